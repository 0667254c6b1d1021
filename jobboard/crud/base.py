"""
Generic CRUD handler shared by every resource.

A CRUDHandler is configured once per model with its response schema, the
fields free-text search applies to and the references to expand, and then
provides the list / list-all / get / create / update / delete operations
used by the endpoint modules. Operations return ready-to-send response
envelopes; get_all can instead hand its ListResult to a further step.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jobboard.core.error_handlers import translate_integrity_error
from jobboard.core.exceptions import NotFoundError
from jobboard.models.user import UserRole
from jobboard.services.api_features import APIFeatures, FieldMap, Operator, Predicate, Projection
from jobboard.services.expansion import Expansion, expand_references
from jobboard.services.lifecycle import prepare_for_insert, prepare_for_update

logger = logging.getLogger(__name__)


def success(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Single-record envelope: {"status", "message"?, "data": {"data": ...}}."""
    body: Dict[str, Any] = {"status": "success"}
    if message:
        body["message"] = message
    body["data"] = {"data": data} if data is not None else None
    return body


@dataclass
class ListResult:
    """Result of a paginated list, kept open for post-processing."""
    total: int
    data: List[Dict[str, Any]]
    objects: List[Any] = field(default_factory=list, repr=False)

    def envelope(self) -> Dict[str, Any]:
        return {
            "status": "success",
            "total": self.total,
            "results": len(self.data),
            "data": self.data,
        }


class CRUDHandler:
    """CRUD operations for one model."""

    def __init__(
        self,
        model,
        schema: type[BaseModel],
        create_schema: Optional[type[BaseModel]] = None,
        update_schema: Optional[type[BaseModel]] = None,
        search_fields: Sequence[str] = ("name", "slug"),
        expansions: Sequence[Expansion] = (),
    ):
        self.model = model
        self.schema = schema
        self.create_schema = create_schema
        self.update_schema = update_schema
        self.search_fields = tuple(search_fields)
        self.expansions = tuple(expansions)
        self.field_map = FieldMap(model, schema)

    # ------------------------------------------------------------------ helpers

    def has_column(self, name: str) -> bool:
        return name in self.model.__table__.columns

    def validate_create(self, payload) -> Dict[str, Any]:
        """Accepts a validated request model or a raw mapping."""
        if isinstance(payload, BaseModel):
            return payload.model_dump()
        if self.create_schema is None:
            return dict(payload)
        return self.create_schema.model_validate(payload).model_dump()

    def validate_update(self, payload) -> Dict[str, Any]:
        """Only the keys the client actually sent survive."""
        if isinstance(payload, BaseModel):
            return payload.model_dump(exclude_unset=True)
        if self.update_schema is None:
            return dict(payload)
        return self.update_schema.model_validate(payload).model_dump(exclude_unset=True)

    def baseline_predicates(self) -> List[Predicate]:
        """Filters every listing starts from: operator accounts are never listed."""
        if self.has_column("role"):
            return [Predicate("role", Operator.NE, UserRole.DEV)]
        return []

    def equality_predicates(self, opt_filter: Optional[Mapping[str, Any]]) -> List[Predicate]:
        return [Predicate(name, Operator.EQ, value) for name, value in (opt_filter or {}).items()]

    def serialize(
        self,
        db: Session,
        objects: Sequence[Any],
        projection: Optional[Projection] = None,
        expansions: Optional[Sequence[Expansion]] = None,
    ) -> List[Dict[str, Any]]:
        dump_kwargs = (projection or Projection()).dump_kwargs()
        documents = [
            self.schema.model_validate(obj).model_dump(mode="json", by_alias=True, **dump_kwargs)
            for obj in objects
        ]
        expansions = self.expansions if expansions is None else expansions
        return expand_references(db, objects, documents, expansions, self.field_map.alias_for)

    def serialize_one(self, db: Session, obj: Any, expansions: Optional[Sequence[Expansion]] = None) -> Dict[str, Any]:
        return self.serialize(db, [obj], expansions=expansions)[0]

    def get_or_404(self, db: Session, record_id: int):
        instance = db.get(self.model, record_id)
        if instance is None:
            raise NotFoundError()
        return instance

    def flush(self, db: Session, payload: Mapping[str, Any]) -> None:
        try:
            db.flush()
        except IntegrityError as exc:
            db.rollback()
            raise translate_integrity_error(exc, payload) from exc

    def commit(self, db: Session, payload: Mapping[str, Any]) -> None:
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise translate_integrity_error(exc, payload) from exc

    def insert(self, db: Session, data: Mapping[str, Any], owner=None):
        """Run the insert pipeline, add and flush (no commit)."""
        values = dict(data)
        if owner is not None and self.has_column("user_id"):
            values["user_id"] = owner.id
        values = prepare_for_insert(db, self.model, values)
        instance = self.model(**values)
        db.add(instance)
        self.flush(db, values)
        return instance

    def apply_update(self, db: Session, instance, data: Mapping[str, Any]):
        """Run the update pipeline, assign and flush (no commit)."""
        values = prepare_for_update(db, instance, data)
        for key, value in values.items():
            setattr(instance, key, value)
        self.flush(db, values)
        return instance

    # --------------------------------------------------------------- operations

    def get_all(
        self,
        db: Session,
        params: Mapping[str, Any],
        opt_filter: Optional[Mapping[str, Any]] = None,
        opt_sort: Optional[Mapping[str, Any]] = None,
        expansions: Optional[Sequence[Expansion]] = None,
        merge_filter: Iterable[Predicate] = (),
        send_response: bool = True,
    ):
        """
        Paginated, filtered listing.

        total counts every row matching the filters; results is the size of
        the returned page. With send_response=False the ListResult is
        returned so the caller can post-process before rendering.
        """
        query_params = {**dict(params), **dict(opt_sort or {})}
        predicates = (
            self.baseline_predicates()
            + list(merge_filter)
            + self.equality_predicates(opt_filter)
        )

        features = APIFeatures(
            db.query(self.model),
            self.field_map,
            query_params,
            search_fields=self.search_fields,
            predicates=predicates,
        ).filter().sort().limit_fields()

        total = features.count()
        objects = features.paginate().query.all()

        result = ListResult(
            total=total,
            data=self.serialize(db, objects, features.projection, expansions),
            objects=objects,
        )
        return result.envelope() if send_response else result

    def get_all_no_pagination(
        self,
        db: Session,
        opt_filter: Optional[Mapping[str, Any]] = None,
        expansions: Optional[Sequence[Expansion]] = None,
    ) -> List[Dict[str, Any]]:
        query = db.query(self.model)
        for predicate in self.baseline_predicates() + self.equality_predicates(opt_filter):
            query = query.filter(predicate.to_clause(self.field_map))
        objects = query.order_by(self.model.created_at.desc(), self.model.id.asc()).all()
        return self.serialize(db, objects, expansions=expansions)

    def get_one(self, db: Session, record_id: int, expansions: Optional[Sequence[Expansion]] = None) -> Dict[str, Any]:
        instance = self.get_or_404(db, record_id)
        return success(self.serialize_one(db, instance, expansions))

    def create(self, db: Session, payload, owner=None) -> Dict[str, Any]:
        data = self.validate_create(payload)
        instance = self.insert(db, data, owner)
        self.commit(db, data)
        db.refresh(instance)
        logger.info(f"Created {self.model.__name__} {instance.id}")
        return success(self.serialize_one(db, instance), "Created successfully")

    def update(self, db: Session, record_id: int, payload) -> Dict[str, Any]:
        instance = self.get_or_404(db, record_id)
        data = self.validate_update(payload)
        self.apply_update(db, instance, data)
        self.commit(db, data)
        db.refresh(instance)
        logger.info(f"Updated {self.model.__name__} {instance.id}")
        return success(self.serialize_one(db, instance), "Updated successfully")

    def delete_one(self, db: Session, record_id: int) -> Dict[str, Any]:
        instance = self.get_or_404(db, record_id)
        db.delete(instance)
        self.commit(db, {})
        logger.info(f"Deleted {self.model.__name__} {record_id}")
        return success(message="Deleted successfully")

    def delete_all(self, db: Session) -> Dict[str, Any]:
        query = db.query(self.model)
        for predicate in self.baseline_predicates():
            query = query.filter(predicate.to_clause(self.field_map))
        count = query.delete(synchronize_session=False)
        self.commit(db, {})
        logger.warning(f"Deleted all {count} {self.model.__tablename__}")
        return success(message="Deleted successfully")
