"""
Job posting model.

Each job belongs to one location, one department and one level. Those
references are exposed to clients by their public aliases (location,
department, level) and expanded to {id, name, slug} on reads.
"""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from jobboard.core.database import Base
from jobboard.models.mixins import OwnedMixin, RecordMixin, SluggedMixin


class Job(RecordMixin, SluggedMixin, OwnedMixin, Base):
    __tablename__ = "jobs"

    name = Column(String, unique=True, nullable=False, index=True)

    location_id = Column(Integer, ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False, index=True)
    level_id = Column(Integer, ForeignKey("levels.id", ondelete="RESTRICT"), nullable=False, index=True)

    is_internship = Column(Boolean, default=False, nullable=False, index=True)

    def __repr__(self):
        return f"<Job(id={self.id}, name='{self.name}', internship={self.is_internship})>"
