from sqlalchemy import Column, String
from jobboard.core.database import Base
from jobboard.models.mixins import OwnedMixin, RecordMixin, SluggedMixin


class Location(RecordMixin, SluggedMixin, OwnedMixin, Base):
    __tablename__ = "locations"

    name = Column(String, unique=True, nullable=False, index=True)

    def __repr__(self):
        return f"<Location(id={self.id}, name='{self.name}')>"
