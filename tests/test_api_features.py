"""
Unit tests for the query feature builder.

Tests:
- Filter parsing (operators, coercion, allow-list)
- Search restricted to configured fields
- Sorting with tie-breaker
- Field selection
- Pagination defaults and totals
"""

from datetime import datetime, timedelta, timezone

import pytest

from jobboard import crud
from jobboard.core.exceptions import ValidationFailedError
from jobboard.models.location import Location
from jobboard.schemas.reference import ReferenceResponse
from jobboard.services.api_features import (
    APIFeatures,
    FieldMap,
    Operator,
    Predicate,
    parse_filters,
)


@pytest.fixture
def field_map():
    return FieldMap(Location, ReferenceResponse)


@pytest.fixture
def locations(db_session):
    """25 locations with document numbers 1..25."""
    records = [crud.locations.insert(db_session, {"name": f"Location {i:02d}"}) for i in range(1, 26)]
    db_session.commit()
    return records


def run(db_session, field_map, params, **kwargs):
    features = APIFeatures(db_session.query(Location), field_map, params, **kwargs)
    features = features.filter().sort().limit_fields()
    total = features.count()
    return total, features.paginate().query.all(), features


class TestParseFilters:
    """Test translation of query parameters into predicates"""

    def test_plain_equality(self, field_map):
        predicates = parse_filters({"name": "Cairo"}, field_map)
        assert predicates == [Predicate("name", Operator.EQ, "Cairo")]

    def test_operator_and_alias(self, field_map):
        predicates = parse_filters({"documentNumber[gte]": "10"}, field_map)
        assert predicates == [Predicate("document_number", Operator.GTE, 10)]

    def test_in_operator_splits_values(self, field_map):
        predicates = parse_filters({"documentNumber[in]": "1, 2,3"}, field_map)
        assert predicates[0].value == [1, 2, 3]

    def test_reserved_params_are_skipped(self, field_map):
        params = {"page": "2", "limit": "5", "sort": "name", "fields": "name", "search": "x"}
        assert parse_filters(params, field_map) == []

    def test_unknown_field_rejected(self, field_map):
        with pytest.raises(ValidationFailedError) as exc_info:
            parse_filters({"password": "x"}, field_map)
        assert exc_info.value.status_code == 400

    def test_unsupported_operator_rejected(self, field_map):
        with pytest.raises(ValidationFailedError) as exc_info:
            parse_filters({"documentNumber[regex]": ".*"}, field_map)
        assert "Unsupported operator" in exc_info.value.errors["documentNumber"][0]

    def test_uncoercible_value_rejected(self, field_map):
        with pytest.raises(ValidationFailedError) as exc_info:
            parse_filters({"documentNumber": "abc"}, field_map)
        assert "documentNumber" in exc_info.value.errors


class TestQueryPipeline:
    """Test the filter -> sort -> fields -> paginate chain"""

    def test_total_counts_before_pagination(self, db_session, field_map, locations):
        total, rows, _ = run(db_session, field_map, {"limit": "10", "page": "2", "sort": "documentNumber"})

        assert total == 25
        assert len(rows) == 10
        assert [row.document_number for row in rows] == list(range(11, 21))

    def test_filter_combines_with_pagination(self, db_session, field_map, locations):
        total, rows, _ = run(
            db_session, field_map, {"documentNumber[gt]": "20", "sort": "-documentNumber"}
        )

        assert total == 5
        assert [row.document_number for row in rows] == [25, 24, 23, 22, 21]

    def test_invalid_pagination_falls_back_to_defaults(self, db_session, field_map, locations):
        total, rows, features = run(db_session, field_map, {"page": "abc", "limit": "-4"})

        assert features.page == 1
        assert features.limit == 100
        assert len(rows) == total == 25

    def test_default_sort_uses_id_tie_breaker(self, db_session, field_map, locations):
        # Rows created within the same instant keep insertion order
        for record in locations:
            record.created_at = locations[0].created_at
        db_session.commit()

        _, rows, _ = run(db_session, field_map, {})
        assert [row.id for row in rows] == sorted(row.id for row in locations)

    def test_multi_key_sort(self, db_session, field_map):
        for name in ("Beta", "Alpha", "Gamma"):
            crud.locations.insert(db_session, {"name": name})
        db_session.commit()
        db_session.query(Location).filter(Location.name == "Gamma").update({"version": 1})
        db_session.commit()

        _, rows, _ = run(db_session, field_map, {"sort": "-version,name"})
        assert [row.name for row in rows] == ["Gamma", "Alpha", "Beta"]

    def test_sort_newest_first_then_by_name(self, db_session, field_map):
        older = datetime(2024, 1, 1, tzinfo=timezone.utc)
        newer = older + timedelta(days=1)
        for name, created_at in (("Delta", older), ("Beta", newer), ("Alpha", newer), ("Charlie", older)):
            crud.locations.insert(db_session, {"name": name}).created_at = created_at
        db_session.commit()

        _, rows, _ = run(db_session, field_map, {"sort": "-createdAt,name"})
        assert [row.name for row in rows] == ["Alpha", "Beta", "Charlie", "Delta"]

    def test_unknown_sort_field_rejected(self, db_session, field_map, locations):
        with pytest.raises(ValidationFailedError):
            run(db_session, field_map, {"sort": "passwordHash"})

    def test_search_is_case_insensitive_and_restricted(self, db_session, field_map):
        crud.locations.insert(db_session, {"name": "Cairo"})
        crud.locations.insert(db_session, {"name": "New Cairo"})
        crud.locations.insert(db_session, {"name": "Giza"})
        db_session.commit()

        total, rows, _ = run(db_session, field_map, {"search": "CAIRO"}, search_fields=("name",))
        assert total == 2
        assert {row.name for row in rows} == {"Cairo", "New Cairo"}

        # documentNumber is not a search field
        total, _, _ = run(db_session, field_map, {"search": "3"}, search_fields=("name",))
        assert total == 0

    def test_search_escapes_wildcards(self, db_session, field_map):
        crud.locations.insert(db_session, {"name": "Remote"})
        db_session.commit()

        total, _, _ = run(db_session, field_map, {"search": "%"}, search_fields=("name",))
        assert total == 0


class TestFieldSelection:
    """Test include/exclude projections"""

    def test_include_keeps_id(self, db_session, field_map, locations):
        _, _, features = run(db_session, field_map, {"fields": "name,slug"})
        assert features.projection.include == {"name", "slug", "id"}

    def test_exclude_hides_version_too(self, db_session, field_map, locations):
        _, _, features = run(db_session, field_map, {"fields": "-slug"})
        assert features.projection.exclude == {"slug", "version"}

    def test_id_cannot_be_excluded(self, db_session, field_map, locations):
        _, _, features = run(db_session, field_map, {"fields": "-id,-slug"})
        assert features.projection.exclude == {"slug", "version"}

    def test_mixed_projection_rejected(self, db_session, field_map, locations):
        with pytest.raises(ValidationFailedError):
            run(db_session, field_map, {"fields": "name,-slug"})
