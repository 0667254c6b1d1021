"""
Reference expansion for serialized records.

After the primary query has run, each Expansion fetches the referenced rows
in one IN query and replaces the stored id in the response document with a
small object of selected fields, e.g. "location": 3 becomes
"location": {"id": 3, "name": "Cairo", "slug": "cairo"}.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session


@dataclass(frozen=True)
class Expansion:
    field: str                      # attribute holding the referenced id, e.g. "location_id"
    model: Any                      # referenced model class
    select: Tuple[str, ...] = ("name", "slug")


def expand_references(
    db: Session,
    objects: Sequence[Any],
    documents: List[Dict[str, Any]],
    expansions: Sequence[Expansion],
    alias_for,
) -> List[Dict[str, Any]]:
    """Replace reference ids in ``documents`` (parallel to ``objects``) in place."""
    for expansion in expansions:
        key = alias_for(expansion.field)
        ids = {getattr(obj, expansion.field) for obj in objects} - {None}
        if not ids or not any(key in doc for doc in documents):
            continue

        rows = db.query(expansion.model).filter(expansion.model.id.in_(ids)).all()
        lookup = {
            row.id: {"id": row.id, **{to_camel(name): getattr(row, name) for name in expansion.select}}
            for row in rows
        }

        for obj, doc in zip(objects, documents):
            if key in doc:
                doc[key] = lookup.get(getattr(obj, expansion.field))
    return documents
