"""
Write pipeline applied by the CRUD layer before every insert and update.

Each step receives a WriteContext and mutates its ``data`` dict in place.
The step sequences are plain tuples so the order of side effects is visible
in one place:

    insert: derive_slugs -> hash_password -> assign_document_number
    update: derive_slugs -> hash_password -> bump_version
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from jobboard.core.security import get_password_hash, utcnow
from jobboard.services.counter import next_document_number
from jobboard.services.slug import make_slug


@dataclass
class WriteContext:
    db: Session
    model: Any
    data: Dict[str, Any]
    instance: Optional[Any] = None

    @property
    def is_new(self) -> bool:
        return self.instance is None

    def has_column(self, name: str) -> bool:
        return name in self.model.__table__.columns


Step = Callable[[WriteContext], None]


def derive_slugs(ctx: WriteContext) -> None:
    if not ctx.has_column("slug") or not ctx.data.get("name"):
        return
    ctx.data["slug"] = make_slug(ctx.data["name"])
    if ctx.is_new:
        ctx.data["original_slug"] = ctx.data["slug"]


def hash_password(ctx: WriteContext) -> None:
    ctx.data.pop("password_confirm", None)
    if "password" not in ctx.data:
        return
    ctx.data["password_hash"] = get_password_hash(ctx.data.pop("password"))
    if not ctx.is_new:
        # Back-dated so a token issued right after the change stays valid
        ctx.data["password_changed_at"] = utcnow() - timedelta(seconds=1)


def assign_document_number(ctx: WriteContext) -> None:
    ctx.data["document_number"] = next_document_number(ctx.db, ctx.model)


def bump_version(ctx: WriteContext) -> None:
    ctx.data["version"] = (ctx.instance.version or 0) + 1


INSERT_STEPS: Tuple[Step, ...] = (derive_slugs, hash_password, assign_document_number)
UPDATE_STEPS: Tuple[Step, ...] = (derive_slugs, hash_password, bump_version)


def prepare_for_insert(db: Session, model, data: Dict[str, Any]) -> Dict[str, Any]:
    ctx = WriteContext(db=db, model=model, data=dict(data))
    for step in INSERT_STEPS:
        step(ctx)
    return ctx.data


def prepare_for_update(db: Session, instance, data: Dict[str, Any]) -> Dict[str, Any]:
    ctx = WriteContext(db=db, model=type(instance), data=dict(data), instance=instance)
    for step in UPDATE_STEPS:
        step(ctx)
    return ctx.data
