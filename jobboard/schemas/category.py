"""
Pydantic schemas for categories.

Image fields hold public paths produced by the image pipeline
(e.g. /images/categories/categories-image-1-1700000000000-0.jpeg).
"""

from typing import List, Optional
from pydantic import Field, field_validator
from jobboard.models.category import GALLERY_SIZE
from jobboard.schemas.common import RecordResponse, RequestSchema, reject_null


class CategoryCreateRequest(RequestSchema):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1)
    image_cover: str = Field(..., min_length=1)
    images: List[str]

    @field_validator("images")
    @classmethod
    def validate_gallery(cls, v: List[str]) -> List[str]:
        if len(v) != GALLERY_SIZE:
            raise ValueError(f"Category must have {GALLERY_SIZE} images")
        return v


class CategoryUpdateRequest(RequestSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    image: Optional[str] = None
    image_cover: Optional[str] = None
    images: Optional[List[str]] = None

    @field_validator("name", "description", "image", "image_cover", "images")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

    @field_validator("images")
    @classmethod
    def validate_gallery(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is not None and len(v) != GALLERY_SIZE:
            raise ValueError(f"Category must have {GALLERY_SIZE} images")
        return v


class CategoryResponse(RecordResponse):
    name: str
    slug: Optional[str] = None
    original_slug: Optional[str] = None
    description: str
    image: str
    image_cover: str
    images: List[str]
    user_id: Optional[int] = Field(None, serialization_alias="user")
