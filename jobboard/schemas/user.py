"""
Pydantic schemas for user accounts and authentication.
"""

from datetime import datetime
from typing import Annotated, Optional
from pydantic import AfterValidator, EmailStr, Field, ValidationInfo, field_validator
from jobboard.models.user import UserRole
from jobboard.schemas.common import RecordResponse, RequestSchema, reject_null

# Emails are stored lower-cased
Email = Annotated[EmailStr, AfterValidator(lambda v: v.lower())]


class PasswordConfirmRequest(RequestSchema):
    """Base for requests that set a new password."""
    password: str = Field(
        ...,
        min_length=8,
        max_length=72,  # bcrypt limit
    )
    password_confirm: str

    @field_validator("password_confirm")
    @classmethod
    def passwords_match(cls, v: str, info: ValidationInfo) -> str:
        if "password" in info.data and v != info.data["password"]:
            raise ValueError("Password and Confirm Password do not match.")
        return v


class SignupRequest(PasswordConfirmRequest):
    """Request schema for user registration (also used to create admins)."""
    name: str = Field(..., min_length=1, max_length=200)
    email: Email
    phone: str = Field(..., min_length=1, max_length=50)
    country: Optional[str] = None


class LoginRequest(RequestSchema):
    email: Email
    password: str


class ForgotPasswordRequest(RequestSchema):
    email: Email


class ResetPasswordRequest(PasswordConfirmRequest):
    pass


class UpdatePasswordRequest(PasswordConfirmRequest):
    password_current: str


class UpdateMeRequest(RequestSchema):
    """Fields a user may change on their own profile."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[Email] = None
    country: Optional[str] = None
    phone: Optional[str] = Field(None, min_length=1, max_length=50)
    photo: Optional[str] = None

    @field_validator("name", "email", "phone", "photo")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)


class UserUpdateRequest(UpdateMeRequest):
    """Fields an administrator may change on any account (never the password)."""
    role: Optional[UserRole] = None
    active: Optional[bool] = None

    @field_validator("role", "active")
    @classmethod
    def flags_not_null(cls, v):
        return reject_null(v)


class UserResponse(RecordResponse):
    """User profile response (no credentials)."""
    name: str
    slug: Optional[str] = None
    original_slug: Optional[str] = None
    email: str
    photo: str
    country: Optional[str] = None
    phone: str
    role: UserRole
    active: bool
    password_changed_at: Optional[datetime] = None
