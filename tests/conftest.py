"""
Pytest configuration and fixtures for testing.

This file provides reusable test fixtures for:
- Database setup/teardown (in-memory SQLite)
- FastAPI test client with the rate limiter reset per test
- Temporary image storage
- Captured emails and queued tasks
- Users of every role with their auth headers
"""

import os
import tempfile

# Settings are read at import time, so the environment is prepared first
os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
os.environ["ENVIRONMENT"] = "development"
os.environ["IMAGES_DIR"] = tempfile.mkdtemp(prefix="jobboard-images-")
os.environ["RATE_LIMIT_BACKEND"] = "memory"

from io import BytesIO  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from jobboard import crud  # noqa: E402
from jobboard.core import security, storage  # noqa: E402
from jobboard.core.database import Base, get_db  # noqa: E402
from jobboard.core.security import create_access_token  # noqa: E402
from jobboard.models.user import UserRole  # noqa: E402
from jobboard.services.email_service import email_service  # noqa: E402
from main import app  # noqa: E402

# Minimum bcrypt cost keeps the suite fast
security.pwd_context.update(bcrypt__rounds=4)

# Use in-memory SQLite for testing (fast, isolated)
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "SecurePass123"


@pytest.fixture
def db_session():
    """
    Create a fresh database for each test.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    """
    FastAPI test client with overridden database dependency.
    """
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.rate_limiter.reset()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def image_storage(tmp_path, monkeypatch):
    """Route every image write of the test into a temporary directory."""
    backend = storage.LocalStorage(str(tmp_path / "images"))
    monkeypatch.setattr(storage, "image_storage", backend)
    return backend


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """
    Capture outgoing mail instead of calling SES or Redis.

    Each entry is (kind, kwargs). Set outbox.fail = True to make sends fail.
    """
    class Outbox(list):
        fail = False

    box = Outbox()

    def fake_reset_email(**kwargs):
        box.append(("password_reset", kwargs))
        return not box.fail

    def fake_queue(task, *args, **kwargs):
        box.append((task.name, kwargs))
        return True

    monkeypatch.setattr(email_service, "send_password_reset_email", fake_reset_email)
    monkeypatch.setattr("jobboard.api.endpoints.users.queue_task_safely", fake_queue)
    return box


@pytest.fixture
def make_user(db_session):
    """Factory inserting a user directly through the CRUD layer."""
    counter = {"n": 0}

    def _make_user(role: UserRole = UserRole.USER, **overrides):
        counter["n"] += 1
        data = {
            "name": f"{role.value.title()} Person {counter['n']}",
            "email": f"{role.value}{counter['n']}@example.com",
            "phone": "+20100000000",
            "password": PASSWORD,
            "role": role,
        }
        data.update(overrides)
        user = crud.users.insert(db_session, data)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


def auth_headers_for(user) -> dict:
    token = create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(make_user):
    return make_user(UserRole.USER)


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN)


@pytest.fixture
def dev(make_user):
    return make_user(UserRole.DEV)


@pytest.fixture
def user_headers(user):
    return auth_headers_for(user)


@pytest.fixture
def admin_headers(admin):
    return auth_headers_for(admin)


@pytest.fixture
def dev_headers(dev):
    return auth_headers_for(dev)


@pytest.fixture
def references(db_session, admin):
    """One department, two locations and one level."""
    department = crud.departments.insert(db_session, {"name": "Engineering"}, owner=admin)
    cairo = crud.locations.insert(db_session, {"name": "Cairo"}, owner=admin)
    alexandria = crud.locations.insert(db_session, {"name": "Alexandria"}, owner=admin)
    level = crud.levels.insert(db_session, {"name": "Senior"}, owner=admin)
    db_session.commit()
    return {
        "department": department,
        "cairo": cairo,
        "alexandria": alexandria,
        "level": level,
    }


def make_image(width: int = 64, height: int = 48, fmt: str = "PNG") -> bytes:
    """Small generated image for upload tests."""
    buffer = BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def image_bytes():
    return make_image
