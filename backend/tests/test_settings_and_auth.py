"""Site settings singleton, bootstrap seed and sign-in."""

from concurrent.futures import ThreadPoolExecutor

from travel_cms.core.config import settings
from travel_cms.db import models
from travel_cms.db.database import SessionLocal
from travel_cms.db.repositories import SiteSettingsRepository


def test_settings_created_lazily_once(client, db_session):
    assert db_session.query(models.SiteSettings).count() == 0

    first = client.get("/api/settings")
    second = client.get("/api/settings")

    assert first.status_code == 200
    assert first.json()["company_name"] == "Thapa Holidays"
    assert first.json()["id"] == second.json()["id"]
    assert "singleton_key" not in first.json()
    assert db_session.query(models.SiteSettings).count() == 1


def test_concurrent_first_reads_share_one_row(db_session):
    def read(_):
        db = SessionLocal()
        try:
            return SiteSettingsRepository(db).get_or_create().id
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=4) as pool:
        ids = set(pool.map(read, range(8)))

    assert len(ids) == 1
    assert db_session.query(models.SiteSettings).count() == 1


def test_update_settings(client, admin_headers):
    assert client.put("/api/settings", json={"tagline": "x"}).status_code == 401

    client.get("/api/settings")
    response = client.put("/api/settings", json={"tagline": "Himalayan journeys"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["tagline"] == "Himalayan journeys"
    assert response.json()["company_name"] == "Thapa Holidays"
    assert client.get("/api/settings").json()["tagline"] == "Himalayan journeys"


def test_seed_is_idempotent(client, db_session):
    first = client.post("/api/seed")
    second = client.post("/api/seed")

    assert first.json() == {"message": "Admin user created successfully", "email": settings.admin_email}
    assert second.json() == {"message": "Admin user already exists"}
    assert db_session.query(models.User).filter_by(role="ADMIN").count() == 1
    assert db_session.query(models.SiteSettings).count() == 1


def test_login_and_session(client):
    client.post("/api/seed")

    bad = client.post("/api/auth/login", json={"email": settings.admin_email, "password": "wrong"})
    good = client.post("/api/auth/login", json={"email": settings.admin_email.upper(), "password": "admin123"})

    assert bad.status_code == 401
    assert good.status_code == 200
    body = good.json()
    assert "password" not in body["user"]

    session = client.get("/api/auth/session", headers={"Authorization": f"Bearer {body['token']}"})
    assert session.json()["user"]["role"] == "ADMIN"

    protected = client.get("/api/contact", headers={"Authorization": f"Bearer {body['token']}"})
    assert protected.status_code == 200


def test_session_without_token(client):
    assert client.get("/api/auth/session").status_code == 401


def test_expired_token_is_rejected(client):
    from types import SimpleNamespace
    from travel_cms.core.security import create_session_token

    admin = SimpleNamespace(id="a", email="a@example.com", name="A", role="ADMIN")
    token = create_session_token(admin, expires_minutes=-5)

    response = client.get("/api/contact", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_session_cookie_is_accepted(client, admin_headers):
    token = admin_headers["Authorization"].split(" ", 1)[1]
    client.cookies.set(settings.session_cookie_name, token)

    assert client.get("/api/contact").status_code == 200
