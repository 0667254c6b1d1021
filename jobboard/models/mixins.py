"""
Column groups shared by every entity table.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import declared_attr


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SluggedMixin:
    """Display name plus the live slug and the slug captured at creation."""
    slug = Column(String, index=True)
    original_slug = Column(String, nullable=True)


class RecordMixin:
    """
    Bookkeeping columns.

    document_number is a per-table sequence assigned on insert (max + 1) and
    unique, so two racing inserts fail instead of sharing a number.
    version counts updates and is hidden from responses unless requested.
    """
    id = Column(Integer, primary_key=True, index=True)
    document_number = Column(Integer, unique=True, index=True, nullable=False)
    version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_now, nullable=False, index=True)


class OwnedMixin:
    """Owning (creating) user."""

    @declared_attr
    def user_id(cls):
        return Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
