"""
Routers for the labeled reference entities: departments, locations, levels.

The three resources share one router layout; their paginated lists carry
per-record job counts (jobCount, interCount).
"""

import logging
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from jobboard import crud
from jobboard.core.database import get_db
from jobboard.core.deps import require_dev, require_staff
from jobboard.crud.base import CRUDHandler
from jobboard.models.user import User
from jobboard.schemas.reference import ReferenceCreateRequest, ReferenceUpdateRequest
from jobboard.services.job_counts import add_job_counts

logger = logging.getLogger(__name__)


def build_reference_router(prefix: str, tag: str, handler: CRUDHandler, foreign_key: str) -> APIRouter:
    """
    Build the CRUD router of one reference resource.

    Args:
        prefix: URL segment, e.g. "locations"
        tag: OpenAPI tag
        handler: CRUD handler of the resource
        foreign_key: Job column pointing at the resource, used for job counts
    """
    router = APIRouter(prefix=f"/{prefix}", tags=[tag])

    @router.get("/")
    def list_records(request: Request, db: Session = Depends(get_db)):
        """Paginated list with job counts."""
        result = handler.get_all(db, request.query_params, send_response=False)
        add_job_counts(db, result.data, foreign_key)
        return result.envelope()

    @router.get("/all")
    def list_all_records(db: Session = Depends(get_db)):
        data = handler.get_all_no_pagination(db)
        return {"status": "success", "results": len(data), "data": data}

    @router.delete("/delete-all", dependencies=[Depends(require_dev)])
    def delete_all_records(db: Session = Depends(get_db)):
        return handler.delete_all(db)

    @router.get("/{id}")
    def get_record(id: int, db: Session = Depends(get_db)):
        return handler.get_one(db, id)

    @router.post("/", status_code=201)
    def create_record(
        body: ReferenceCreateRequest,
        db: Session = Depends(get_db),
        user: User = Depends(require_staff),
    ):
        return handler.create(db, body, owner=user)

    @router.patch("/{id}", dependencies=[Depends(require_staff)])
    def update_record(id: int, body: ReferenceUpdateRequest, db: Session = Depends(get_db)):
        return handler.update(db, id, body)

    @router.delete("/{id}", dependencies=[Depends(require_staff)])
    def delete_record(id: int, db: Session = Depends(get_db)):
        return handler.delete_one(db, id)

    return router


departments_router = build_reference_router("departments", "Departments", crud.departments, "department_id")
locations_router = build_reference_router("locations", "Locations", crud.locations, "location_id")
levels_router = build_reference_router("levels", "Levels", crud.levels, "level_id")
