"""
Job counts per parent entity (location, department or level).

Jobs are hard-deleted, so every stored job is counted.
"""

from collections import defaultdict
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from jobboard.models.job import Job


def add_job_counts(db: Session, entities: List[Dict[str, Any]], foreign_key: str) -> List[Dict[str, Any]]:
    """
    Attach jobCount and interCount to serialized parent entities.

    Args:
        db: Database session
        entities: Serialized parents, each carrying its "id"
        foreign_key: Job column referencing the parent (location_id, department_id, level_id)

    Returns:
        The same list, each entity with jobCount (all jobs, internships included)
        and interCount (internships only)
    """
    if not entities:
        return entities

    column = getattr(Job, foreign_key)
    entity_ids = [entity["id"] for entity in entities]

    rows = (
        db.query(column, Job.is_internship, func.count(Job.id))
        .filter(column.in_(entity_ids))
        .group_by(column, Job.is_internship)
        .all()
    )

    regular: Dict[int, int] = defaultdict(int)
    internships: Dict[int, int] = defaultdict(int)
    for parent_id, is_internship, count in rows:
        if is_internship:
            internships[parent_id] += count
        else:
            regular[parent_id] += count

    for entity in entities:
        entity["interCount"] = internships[entity["id"]]
        entity["jobCount"] = regular[entity["id"]] + entity["interCount"]
    return entities
