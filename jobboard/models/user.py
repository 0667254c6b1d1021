"""
User model for authentication and role-based access.

Roles:
- user: regular account created through /signup
- admin: manages job board content
- dev: operator account, hidden from user listings, may bulk-delete
"""

import enum
from sqlalchemy import Column, String, Boolean, DateTime, Enum
from jobboard.core.database import Base
from jobboard.models.mixins import RecordMixin, SluggedMixin

DEFAULT_PHOTO = "/images/users/default.jpg"


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    DEV = "dev"


class User(RecordMixin, SluggedMixin, Base):
    __tablename__ = "users"

    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    photo = Column(String, nullable=False, default=DEFAULT_PHOTO)
    country = Column(String, nullable=True)
    phone = Column(String, nullable=False)
    role = Column(
        Enum(UserRole, values_callable=lambda roles: [r.value for r in roles], name="userrole"),
        nullable=False,
        default=UserRole.USER,
        index=True,
    )

    # Credentials
    password_hash = Column(String, nullable=False)
    password_changed_at = Column(DateTime(timezone=True), nullable=True)
    password_reset_token = Column(String, nullable=True, index=True)  # sha256 of the emailed token
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)

    # Account status (deleteMe only deactivates)
    active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role={self.role.value})>"
