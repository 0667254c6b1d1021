"""
Job endpoints.

The list accepts location, department and level as comma-separated
document numbers (?location=1,4), resolved to record ids before filtering.
References are expanded to {id, name, slug} on list and get-one.
"""

import logging
from typing import Any, Dict, List, Tuple
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from jobboard import crud
from jobboard.core.database import get_db
from jobboard.core.deps import require_dev, require_staff
from jobboard.core.exceptions import ValidationFailedError
from jobboard.models import Department, Level, Location
from jobboard.models.user import User
from jobboard.schemas.job import JobCreateRequest, JobUpdateRequest
from jobboard.services.api_features import Operator, Predicate

router = APIRouter(prefix="/jobs", tags=["Jobs"])
logger = logging.getLogger(__name__)

# query parameter -> (referenced model, job column)
REFERENCE_FILTERS = {
    "location": (Location, "location_id"),
    "department": (Department, "department_id"),
    "level": (Level, "level_id"),
}


def _document_numbers(param: str, raw: str) -> List[int]:
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise ValidationFailedError({param: [f'Invalid {param}: "{raw}". Please provide document numbers']})


def resolve_reference_filters(db: Session, params: Dict[str, Any]) -> Tuple[Dict[str, Any], List[Predicate]]:
    """
    Replace document-number reference filters with id predicates.

    Returns the remaining parameters and the predicates to merge. A filter
    whose document numbers match no record matches no job.
    """
    remaining = dict(params)
    predicates = []
    for param, (model, column) in REFERENCE_FILTERS.items():
        raw = remaining.pop(param, None)
        if raw is None:
            continue
        numbers = _document_numbers(param, raw)
        ids = [row.id for row in db.query(model.id).filter(model.document_number.in_(numbers))]
        predicates.append(Predicate(column, Operator.IN, ids))
    return remaining, predicates


@router.get("/")
def list_jobs(request: Request, db: Session = Depends(get_db)):
    params, predicates = resolve_reference_filters(db, dict(request.query_params))
    return crud.jobs.get_all(db, params, merge_filter=predicates)


@router.get("/all")
def list_all_jobs(db: Session = Depends(get_db)):
    data = crud.jobs.get_all_no_pagination(db)
    return {"status": "success", "results": len(data), "data": data}


@router.delete("/delete-all", dependencies=[Depends(require_dev)])
def delete_all_jobs(db: Session = Depends(get_db)):
    return crud.jobs.delete_all(db)


@router.get("/{id}")
def get_job(id: int, db: Session = Depends(get_db)):
    return crud.jobs.get_one(db, id)


@router.post("/", status_code=201)
def create_job(
    body: JobCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    """Create a job; location, department and level are record ids."""
    return crud.jobs.create(db, body, owner=user)


@router.patch("/{id}", dependencies=[Depends(require_staff)])
def update_job(id: int, body: JobUpdateRequest, db: Session = Depends(get_db)):
    return crud.jobs.update(db, id, body)


@router.delete("/{id}", dependencies=[Depends(require_staff)])
def delete_job(id: int, db: Session = Depends(get_db)):
    return crud.jobs.delete_one(db, id)
