from sqlalchemy import Column, String
from jobboard.core.database import Base
from jobboard.models.mixins import OwnedMixin, RecordMixin, SluggedMixin


class Level(RecordMixin, SluggedMixin, OwnedMixin, Base):
    __tablename__ = "levels"

    name = Column(String, unique=True, nullable=False, index=True)

    def __repr__(self):
        return f"<Level(id={self.id}, name='{self.name}')>"
