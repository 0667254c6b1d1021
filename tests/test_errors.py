"""
Tests for error normalization and the response envelopes.

Tests:
- Development envelope (statusCode + per-field errors)
- Production envelope (status + message only)
- Unknown errors never leak details
- Translation of duplicate keys, bad ids, malformed bodies, missing fields
  and nulls sent to partial updates
- Catch-all 404 for unknown routes
"""

import pytest
from fastapi.testclient import TestClient

from jobboard import crud
from jobboard.core.config import settings
from jobboard.core.exceptions import AppError
from main import create_app


@pytest.fixture
def production(monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")


class TestEnvelopes:
    """Test the two error envelopes"""

    def test_development_envelope(self, client):
        response = client.get("/api/v1/locations/9999")

        assert response.status_code == 404
        assert response.json() == {
            "status": "fail",
            "statusCode": 404,
            "errors": {"error": ["No document found with that ID"]},
        }

    def test_production_envelope(self, client, production):
        response = client.get("/api/v1/locations/9999")

        assert response.status_code == 404
        assert response.json() == {"status": "fail", "message": "No document found with that ID"}

    def test_production_adds_hsts(self, client, production):
        response = client.get("/api/v1/levels/")

        assert "Strict-Transport-Security" in response.headers
        assert response.headers["Cache-Control"] == "no-store"
        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestUnknownErrors:
    """Test that programming errors are reported generically"""

    @pytest.fixture
    def broken_client(self):
        app = create_app()

        @app.get("/api/v1/broken")
        def broken():
            raise RuntimeError("database password is hunter2")

        @app.get("/api/v1/non-operational")
        def non_operational():
            raise AppError("internal detail", 500, is_operational=False)

        with TestClient(app, raise_server_exceptions=False) as test_client:
            yield test_client

    def test_unknown_error_in_production(self, broken_client, production):
        response = broken_client.get("/api/v1/broken")

        assert response.status_code == 500
        assert response.json() == {"status": "error", "message": "Something went wrong!"}

    def test_unknown_error_in_development(self, broken_client):
        response = broken_client.get("/api/v1/broken")

        assert response.status_code == 500
        assert "hunter2" not in response.text

    def test_non_operational_app_error(self, broken_client, production):
        response = broken_client.get("/api/v1/non-operational")

        assert response.status_code == 500
        assert response.json()["message"] == "Something went wrong!"


class TestTranslations:
    """Test mapping of low-level failures onto client errors"""

    def test_duplicate_key(self, client, admin_headers, references):
        response = client.post("/api/v1/locations/", json={"name": "Cairo"}, headers=admin_headers)

        assert response.status_code == 400
        message = response.json()["errors"]["name"][0]
        assert "Cairo" in message
        assert "already exists" in message

    def test_duplicate_key_production_message(self, client, admin_headers, references, production):
        response = client.post("/api/v1/locations/", json={"name": "Cairo"}, headers=admin_headers)

        assert response.json() == {
            "status": "fail",
            "message": "The name ((Cairo)) already exists. Please choose a different name.",
        }

    def test_invalid_id(self, client):
        response = client.get("/api/v1/locations/abc")

        assert response.status_code == 400
        assert response.json()["errors"]["error"] == ['Invalid id: "abc". Please provide a valid ID']

    def test_malformed_json(self, client, admin_headers):
        response = client.post(
            "/api/v1/locations/",
            content=b'{"name": "Cairo",',
            headers={**admin_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["errors"]["error"] == ["Invalid request format"]

    def test_missing_required_field(self, client, admin_headers):
        response = client.post("/api/v1/locations/", json={}, headers=admin_headers)

        assert response.status_code == 400
        assert "name" in response.json()["errors"]

    def test_explicit_null_rejected_on_update(self, client, admin_headers, references):
        cairo = references["cairo"]

        response = client.patch(f"/api/v1/locations/{cairo.id}", json={"name": None}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["errors"]["name"] == ["This field cannot be empty"]
        assert client.get(f"/api/v1/locations/{cairo.id}").json()["data"]["data"]["name"] == "Cairo"

    def test_explicit_null_reference_rejected_on_job_update(self, client, db_session, admin_headers, references):
        job = crud.jobs.insert(
            db_session,
            {
                "name": "Backend Engineer",
                "location_id": references["cairo"].id,
                "department_id": references["department"].id,
                "level_id": references["level"].id,
                "is_internship": False,
            },
        )
        db_session.commit()

        response = client.patch(
            f"/api/v1/jobs/{job.id}",
            json={"location": None, "isInternship": None},
            headers=admin_headers,
        )

        assert response.status_code == 400
        errors = response.json()["errors"]
        assert errors["location"] == ["This field cannot be empty"]
        assert errors["isInternship"] == ["This field cannot be empty"]

    def test_oversized_json_body(self, client, admin_headers):
        response = client.post(
            "/api/v1/locations/",
            json={"name": "x" * (settings.MAX_JSON_BODY_BYTES + 1)},
            headers=admin_headers,
        )

        assert response.status_code == 413

    def test_unknown_route(self, client):
        response = client.get("/api/v1/nope")

        assert response.status_code == 404
        assert response.json()["errors"]["error"] == ["Can't find /api/v1/nope on this server!"]

    def test_unknown_filter_field(self, client):
        response = client.get("/api/v1/locations/?passwordHash=x")

        assert response.status_code == 400


class TestHealth:
    """Test the health endpoints"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_detailed_health(self, client):
        body = client.get("/health/detailed").json()

        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "healthy"
        assert body["checks"]["storage"]["backend"] == "LocalStorage"
