"""
Pydantic schemas for job postings.

References are sent and returned under their public names (location,
department, level); on reads they are expanded to {id, name, slug}.
"""

from typing import Optional
from pydantic import AliasChoices, Field, field_validator
from jobboard.schemas.common import RecordResponse, RequestSchema, reject_null


class JobCreateRequest(RequestSchema):
    """Schema for creating a new job"""
    name: str = Field(..., min_length=1, max_length=200)
    location_id: int = Field(..., validation_alias=AliasChoices("location", "locationId", "location_id"))
    department_id: int = Field(..., validation_alias=AliasChoices("department", "departmentId", "department_id"))
    level_id: int = Field(..., validation_alias=AliasChoices("level", "levelId", "level_id"))
    is_internship: bool = False


class JobUpdateRequest(RequestSchema):
    """Schema for partial job updates"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    location_id: Optional[int] = Field(None, validation_alias=AliasChoices("location", "locationId", "location_id"))
    department_id: Optional[int] = Field(None, validation_alias=AliasChoices("department", "departmentId", "department_id"))
    level_id: Optional[int] = Field(None, validation_alias=AliasChoices("level", "levelId", "level_id"))
    is_internship: Optional[bool] = None

    @field_validator("name", "location_id", "department_id", "level_id", "is_internship")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)


class JobResponse(RecordResponse):
    """Schema for job response"""
    name: str
    slug: Optional[str] = None
    original_slug: Optional[str] = None
    location_id: int = Field(..., serialization_alias="location")
    department_id: int = Field(..., serialization_alias="department")
    level_id: int = Field(..., serialization_alias="level")
    is_internship: bool
    user_id: Optional[int] = Field(None, serialization_alias="user")
