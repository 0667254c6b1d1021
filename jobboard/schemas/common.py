"""
Shared base schemas.

Responses are read from ORM objects and serialized with camelCase aliases
(document_number -> documentNumber). Requests accept camelCase or snake_case keys.
"""

from datetime import datetime
from pydantic import AliasGenerator, BaseModel
from pydantic.alias_generators import to_camel


class RequestSchema(BaseModel):
    """Base for request bodies."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        str_strip_whitespace = True


class RecordResponse(BaseModel):
    """Base for serialized records: id plus bookkeeping columns."""
    id: int
    document_number: int
    created_at: datetime
    version: int = 0

    class Config:
        from_attributes = True  # Allows conversion from SQLAlchemy models
        alias_generator = AliasGenerator(serialization_alias=to_camel)


def reject_null(value):
    """Partial updates may omit a required field but never clear it."""
    if value is None:
        raise ValueError("This field cannot be empty")
    return value
