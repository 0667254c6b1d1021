"""
Pydantic schemas for the simple labeled reference entities:
departments, locations and levels.
"""

from typing import Optional
from pydantic import Field, field_validator
from jobboard.schemas.common import RecordResponse, RequestSchema, reject_null


class ReferenceCreateRequest(RequestSchema):
    name: str = Field(..., min_length=1, max_length=200)


class ReferenceUpdateRequest(RequestSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=200)

    @field_validator("name")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)


class ReferenceResponse(RecordResponse):
    name: str
    slug: Optional[str] = None
    original_slug: Optional[str] = None
    user_id: Optional[int] = Field(None, serialization_alias="user")
