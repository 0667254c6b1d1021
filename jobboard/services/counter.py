"""
Per-table sequential document numbers.

The number is read as max + 1 without a lock, so two concurrent inserts can
compute the same value. The unique constraint on document_number turns that
race into a duplicate-key failure on the second insert.
"""

from sqlalchemy import func
from sqlalchemy.orm import Session


def next_document_number(db: Session, model) -> int:
    """Return the next document number for the model's table (1 for an empty table)."""
    current_max = db.query(func.max(model.document_number)).scalar()
    return (current_max or 0) + 1
