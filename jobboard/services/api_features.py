"""
Query feature builder for list endpoints.

Turns the flat query-string mapping of a request into a refined SQLAlchemy
query in four stages, always applied in this order:

    filter (+ search) -> sort -> field selection -> pagination

Filters are parsed into explicit Predicate objects against an allow-list of
fields taken from the resource's response schema, so no request key reaches
the query layer without being validated first.

Examples:
    ?name=Cairo                       name == "Cairo"
    ?documentNumber[gte]=10           document_number >= 10
    ?role[ne]=admin                   role != "admin"
    ?documentNumber[in]=1,2,3         document_number IN (1, 2, 3)
    ?search=dev                       name/slug ILIKE '%dev%' (configured fields)
    ?sort=-createdAt,name             created_at DESC, name ASC
    ?fields=name,slug  /  ?fields=-slug
    ?page=2&limit=10                  OFFSET 10 LIMIT 10
"""

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from pydantic import BaseModel
from sqlalchemy import Boolean, DateTime, Enum, JSON, inspect, or_
from sqlalchemy.orm import Query

from jobboard.core.exceptions import ValidationFailedError

RESERVED_PARAMS = frozenset({"page", "sort", "limit", "fields", "search"})
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 100
DEFAULT_SORT = "-createdAt"
HIDDEN_BY_DEFAULT = frozenset({"version"})

_OPERATOR_KEY = re.compile(r"^(?P<field>\w+)\[(?P<op>\w+)\]$")
_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}


class Operator(str, enum.Enum):
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"


@dataclass(frozen=True)
class FieldSpec:
    name: str          # model attribute / schema field name
    alias: str         # public (JSON) name
    column: Any = None  # mapped Column, None for computed fields

    @property
    def filterable(self) -> bool:
        return self.column is not None and not isinstance(self.column.type, JSON)

    def coerce(self, raw: Any) -> Any:
        """Convert a query-string value to the column's Python type."""
        if not isinstance(raw, str):
            return raw
        column_type = self.column.type
        if isinstance(column_type, Boolean):
            lowered = raw.lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
            raise ValueError(raw)
        if isinstance(column_type, Enum) and column_type.enum_class is not None:
            return column_type.enum_class(raw)
        if isinstance(column_type, DateTime):
            return datetime.fromisoformat(raw)
        return column_type.python_type(raw)


class FieldMap:
    """Public field allow-list of a resource, keyed by alias and attribute name."""

    def __init__(self, model, schema: type[BaseModel]):
        self.model = model
        columns = inspect(model).columns
        self._by_key: Dict[str, FieldSpec] = {}
        for name, info in schema.model_fields.items():
            spec = FieldSpec(
                name=name,
                alias=info.serialization_alias or name,
                column=columns[name] if name in columns else None,
            )
            self._by_key[spec.alias] = spec
            self._by_key[name] = spec

    def get(self, key: str) -> Optional[FieldSpec]:
        return self._by_key.get(key)

    def require(self, key: str, param: str) -> FieldSpec:
        spec = self._by_key.get(key)
        if spec is None:
            raise ValidationFailedError({param: [f"Unknown field: {key}"]})
        return spec

    def alias_for(self, name: str) -> str:
        spec = self._by_key.get(name)
        return spec.alias if spec else name

    def attribute(self, spec: FieldSpec):
        return getattr(self.model, spec.name)


@dataclass(frozen=True)
class Predicate:
    field: str
    operator: Operator
    value: Any

    def to_clause(self, field_map: FieldMap):
        spec = field_map.require(self.field, self.field)
        attribute = field_map.attribute(spec)
        if self.operator is Operator.IN:
            return attribute.in_(list(self.value))
        if self.operator is Operator.NE:
            return attribute != self.value
        if self.operator is Operator.GT:
            return attribute > self.value
        if self.operator is Operator.GTE:
            return attribute >= self.value
        if self.operator is Operator.LT:
            return attribute < self.value
        if self.operator is Operator.LTE:
            return attribute <= self.value
        return attribute == self.value


def parse_filters(params: Mapping[str, Any], field_map: FieldMap) -> List[Predicate]:
    """Parse every non-reserved parameter into a validated Predicate."""
    predicates = []
    for key, raw in params.items():
        if key in RESERVED_PARAMS:
            continue

        match = _OPERATOR_KEY.match(key)
        field_key, op_name = (match.group("field"), match.group("op")) if match else (key, "eq")

        try:
            operator = Operator(op_name)
        except ValueError:
            raise ValidationFailedError({field_key: [f"Unsupported operator: {op_name}"]})

        spec = field_map.get(field_key)
        if spec is None or not spec.filterable:
            raise ValidationFailedError({field_key: [f"Cannot filter by {field_key}"]})

        try:
            if operator is Operator.IN:
                items = raw.split(",") if isinstance(raw, str) else raw
                value = [spec.coerce(item.strip() if isinstance(item, str) else item) for item in items]
            else:
                value = spec.coerce(raw)
        except (TypeError, ValueError):
            raise ValidationFailedError({spec.alias: [f'Invalid {spec.alias}: "{raw}". Please provide a valid value']})

        predicates.append(Predicate(spec.name, operator, value))
    return predicates


def _positive_int(raw: Any, default: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


@dataclass
class Projection:
    include: Optional[Set[str]] = None
    exclude: Set[str] = field(default_factory=lambda: set(HIDDEN_BY_DEFAULT))

    def dump_kwargs(self) -> Dict[str, Any]:
        return {"include": self.include, "exclude": self.exclude or None}


class APIFeatures:
    """Chainable query refinement driven by request parameters."""

    def __init__(
        self,
        query: Query,
        field_map: FieldMap,
        params: Mapping[str, Any],
        search_fields: Sequence[str] = (),
        predicates: Iterable[Predicate] = (),
    ):
        self.query = query
        self.field_map = field_map
        self.params = dict(params)
        self.search_fields = tuple(search_fields)
        self.predicates = list(predicates)
        self.projection = Projection()
        self.page = DEFAULT_PAGE
        self.limit = DEFAULT_LIMIT

    def filter(self) -> "APIFeatures":
        self.predicates.extend(parse_filters(self.params, self.field_map))
        for predicate in self.predicates:
            self.query = self.query.filter(predicate.to_clause(self.field_map))
        return self.search()

    def search(self) -> "APIFeatures":
        term = str(self.params.get("search") or "").strip()
        if term and self.search_fields:
            clauses = [
                getattr(self.field_map.model, name).icontains(term, autoescape=True)
                for name in self.search_fields
            ]
            self.query = self.query.filter(or_(*clauses))
        return self

    def sort(self) -> "APIFeatures":
        raw = str(self.params.get("sort") or DEFAULT_SORT)
        order_by = []
        for token in filter(None, (part.strip() for part in raw.split(","))):
            descending = token.startswith("-")
            spec = self.field_map.require(token.lstrip("-"), "sort")
            if spec.column is None:
                raise ValidationFailedError({"sort": [f"Cannot sort by {spec.alias}"]})
            attribute = self.field_map.attribute(spec)
            order_by.append(attribute.desc() if descending else attribute.asc())
        order_by.append(self.field_map.model.id.asc())
        self.query = self.query.order_by(*order_by)
        return self

    def limit_fields(self) -> "APIFeatures":
        raw = str(self.params.get("fields") or "")
        tokens = [part.strip() for part in raw.split(",") if part.strip()]
        if not tokens:
            return self

        excluded = [t for t in tokens if t.startswith("-")]
        if excluded and len(excluded) != len(tokens):
            raise ValidationFailedError({"fields": ["Cannot mix included and excluded fields"]})

        names = {self.field_map.require(t.lstrip("-"), "fields").name for t in tokens}
        if excluded:
            # id is never excluded
            self.projection = Projection(exclude=(names - {"id"}) | set(HIDDEN_BY_DEFAULT))
        else:
            self.projection = Projection(include=names | {"id"}, exclude=set())
        return self

    def count(self) -> int:
        """Number of rows matching the filters, before pagination."""
        return self.query.order_by(None).count()

    def paginate(self) -> "APIFeatures":
        self.page = _positive_int(self.params.get("page"), DEFAULT_PAGE)
        self.limit = _positive_int(self.params.get("limit"), DEFAULT_LIMIT)
        self.query = self.query.offset((self.page - 1) * self.limit).limit(self.limit)
        return self
