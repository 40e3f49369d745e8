"""
Shared fixtures.

The app is pointed at a throwaway SQLite file before anything from
``travel_cms`` is imported; every test starts from an empty schema and an
empty page cache.
"""

import os
import tempfile
from types import SimpleNamespace

_DB_DIR = tempfile.mkdtemp(prefix="travel-cms-tests-")
os.environ["database_url"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["rate_limit_enabled"] = "false"
os.environ["environment"] = "test"
os.environ["smtp_host"] = ""
os.environ["secret_key"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from travel_cms.core import page_cache
from travel_cms.core.security import create_session_token
from travel_cms.db.database import SessionLocal, engine
from travel_cms.db.models import Base
from travel_cms.main import app
from travel_cms.services import notifications


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    page_cache.clear()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _headers(role: str, name: str) -> dict:
    user = SimpleNamespace(id=f"{role.lower()}-1", email=f"{role.lower()}@example.com", name=name, role=role)
    return {"Authorization": f"Bearer {create_session_token(user)}"}


@pytest.fixture
def admin_headers():
    return _headers("ADMIN", "Test Admin")


@pytest.fixture
def user_headers():
    return _headers("USER", "Test User")


@pytest.fixture
def sent_emails(monkeypatch):
    """Replace the SMTP sender with a recorder."""
    sent = []

    async def fake_sender(notification):
        sent.append(notification)
        return True

    monkeypatch.setattr(notifications, "sender", fake_sender)
    return sent


@pytest.fixture
def make_package(client, admin_headers):
    """Create a package through the API and return its JSON."""
    def _make(name="Goa Beach Escape", price=15000, **fields):
        response = client.post("/api/packages", json=dict(fields, name=name, price=price), headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()
    return _make
