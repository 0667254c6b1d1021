from sqlalchemy import Column, String
from jobboard.core.database import Base
from jobboard.models.mixins import OwnedMixin, RecordMixin, SluggedMixin


class Department(RecordMixin, SluggedMixin, OwnedMixin, Base):
    __tablename__ = "departments"

    name = Column(String, unique=True, nullable=False, index=True)

    def __repr__(self):
        return f"<Department(id={self.id}, name='{self.name}')>"
