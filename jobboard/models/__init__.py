"""
Database models package.
"""

from jobboard.models.user import User, UserRole
from jobboard.models.category import Category
from jobboard.models.department import Department
from jobboard.models.location import Location
from jobboard.models.level import Level
from jobboard.models.job import Job

__all__ = ["User", "UserRole", "Category", "Department", "Location", "Level", "Job"]
