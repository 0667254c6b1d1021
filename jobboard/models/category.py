"""
Category model.

A category carries three kinds of images, stored as public paths:
a card image, a cover image and a gallery of exactly three images.
"""

from sqlalchemy import Column, String, Text, JSON
from jobboard.core.database import Base
from jobboard.models.mixins import OwnedMixin, RecordMixin, SluggedMixin

GALLERY_SIZE = 3


class Category(RecordMixin, SluggedMixin, OwnedMixin, Base):
    __tablename__ = "categories"

    name = Column(String, unique=True, nullable=False, index=True)
    description = Column(Text, nullable=False)

    image = Column(String, nullable=False)
    image_cover = Column(String, nullable=False)
    images = Column(JSON, nullable=False, default=list)

    def __repr__(self):
        return f"<Category(id={self.id}, name='{self.name}')>"
