"""
CRUD handlers (Create, Read, Update, Delete) for every resource.

This layer keeps database operations out of the API routes: each endpoint
module talks to the handler configured for its model here.
"""

from jobboard.crud.base import CRUDHandler, ListResult, success
from jobboard.models import Category, Department, Job, Level, Location, User
from jobboard.schemas.category import CategoryCreateRequest, CategoryResponse, CategoryUpdateRequest
from jobboard.schemas.job import JobCreateRequest, JobResponse, JobUpdateRequest
from jobboard.schemas.reference import ReferenceCreateRequest, ReferenceResponse, ReferenceUpdateRequest
from jobboard.schemas.user import UserResponse, UserUpdateRequest
from jobboard.services.expansion import Expansion

# Accounts are created by the signup/admin routes, which validate their own bodies
users = CRUDHandler(
    User,
    UserResponse,
    update_schema=UserUpdateRequest,
    search_fields=("name", "email", "slug"),
)
categories = CRUDHandler(
    Category,
    CategoryResponse,
    create_schema=CategoryCreateRequest,
    update_schema=CategoryUpdateRequest,
    search_fields=("name", "slug", "description"),
)
departments = CRUDHandler(Department, ReferenceResponse, ReferenceCreateRequest, ReferenceUpdateRequest)
locations = CRUDHandler(Location, ReferenceResponse, ReferenceCreateRequest, ReferenceUpdateRequest)
levels = CRUDHandler(Level, ReferenceResponse, ReferenceCreateRequest, ReferenceUpdateRequest)
jobs = CRUDHandler(
    Job,
    JobResponse,
    create_schema=JobCreateRequest,
    update_schema=JobUpdateRequest,
    expansions=(
        Expansion("location_id", Location),
        Expansion("department_id", Department),
        Expansion("level_id", Level),
    ),
)

__all__ = [
    "CRUDHandler",
    "ListResult",
    "success",
    "users",
    "categories",
    "departments",
    "locations",
    "levels",
    "jobs",
]
