"""Dashboard stats, global search, the home feed and health probes."""

from datetime import datetime

from travel_cms.db import models
from travel_cms.db.database import SessionLocal, get_session_factory
from travel_cms.main import app
from travel_cms.services.aggregation import enquiry_histogram, month_buckets


def test_month_buckets_cross_year_boundary():
    assert month_buckets(datetime(2024, 2, 15), months=4) == [(2023, 11), (2023, 12), (2024, 1), (2024, 2)]


def test_histogram_is_zero_filled_and_ordered():
    now = datetime(2024, 6, 10)
    created = [datetime(2024, 6, 1), datetime(2024, 6, 9), datetime(2024, 3, 3), datetime(2023, 1, 1)]

    histogram = enquiry_histogram(created, now)

    assert [b["month"] for b in histogram] == ["2024-01", "2024-02", "2024-03", "2024-04", "2024-05", "2024-06"]
    assert [b["count"] for b in histogram] == [0, 0, 1, 0, 0, 2]


def test_stats_require_admin(client, user_headers):
    assert client.get("/api/admin/stats").status_code == 401
    assert client.get("/api/admin/stats", headers=user_headers).status_code == 401


def test_dashboard_stats(client, admin_headers, db_session, make_package):
    package = make_package("Goa Beach Escape")
    make_package("Draft", status="INACTIVE")
    db_session.add_all([
        models.PackageEnquiry(name="A", email="a@example.com", phone="1", package_id=package["id"]),
        models.PackageEnquiry(name="B", email="b@example.com", phone="2", status="CLOSED"),
        models.Testimonial(name="T", comment="Nice"),
    ])
    db_session.commit()

    body = client.get("/api/admin/stats", headers=admin_headers).json()

    assert body["stats"] == {
        "total_packages": 1,
        "total_destinations": 0,
        "total_enquiries": 2,
        "total_blog_posts": 0,
        "new_enquiries": 1,
        "pending_reviews": 0,
        "pending_testimonials": 1,
    }
    assert len(body["recent_enquiries"]) == 2
    assert {e["package"]["name"] for e in body["recent_enquiries"] if e["package"]} == {"Goa Beach Escape"}
    assert len(body["monthly_enquiries"]) == 6
    assert body["monthly_enquiries"][-1] == {"month": datetime.utcnow().strftime("%Y-%m"), "count": 2}


def test_short_search_query_never_opens_a_session(client, admin_headers):
    opened = []

    def tracking_factory():
        opened.append(1)
        return SessionLocal()

    app.dependency_overrides[get_session_factory] = lambda: tracking_factory

    for q in ("", "a", " "):
        response = client.get("/api/admin/search", params={"q": q}, headers=admin_headers)
        assert response.json() == {"results": []}
    assert opened == []


def test_padded_two_character_query_is_searched(client, admin_headers):
    opened = []

    def tracking_factory():
        opened.append(1)
        return SessionLocal()

    app.dependency_overrides[get_session_factory] = lambda: tracking_factory

    response = client.get("/api/admin/search", params={"q": " d"}, headers=admin_headers)

    assert response.status_code == 200
    assert "counts" in response.json()
    assert opened


def test_search_fans_out_in_fixed_order(client, admin_headers, make_package):
    make_package("Darjeeling Delight", location="Darjeeling")
    client.post("/api/destinations", json={"name": "Darjeeling"}, headers=admin_headers)
    client.post("/api/contact", json={"name": "Dar Jeeling", "email": "x@example.com", "message": "hi"})
    client.post("/api/blog", json={"title": "Darjeeling Tea Trails"}, headers=admin_headers)

    body = client.get("/api/admin/search", params={"q": "DARJ"}, headers=admin_headers).json()

    assert [r["type"] for r in body["results"]] == ["package", "destination", "blog"]
    assert body["counts"] == {
        "packages": 1, "destinations": 1, "enquiries": 0, "contacts": 0, "blog_posts": 1, "testimonials": 0,
    }
    hit = body["results"][0]
    assert set(hit) == {"id", "type", "title", "subtitle", "href", "status"}
    assert body["results"][2]["status"] == "DRAFT"


def test_search_caps_each_section(client, admin_headers, make_package):
    for i in range(7):
        make_package(f"Sikkim Tour {i}")

    body = client.get("/api/admin/search", params={"q": "sikkim"}, headers=admin_headers).json()

    assert body["counts"]["packages"] == 5


def test_public_search_only_returns_active(client, make_package):
    make_package("Goa Beach Escape")
    make_package("Goa Draft", status="INACTIVE")

    body = client.get("/api/search", params={"q": "goa"}).json()

    assert [r["title"] for r in body["results"]] == ["Goa Beach Escape"]
    assert body["results"][0]["href"] == "/packages/goa-beach-escape"


def test_home_feed_is_cached_until_a_mutation(client, admin_headers, make_package):
    make_package("Goa Beach Escape", featured=True)
    first = client.get("/api/home").json()
    assert [p["name"] for p in first["packages"]] == ["Goa Beach Escape"]
    assert first["settings"]["company_name"] == "Thapa Holidays"

    make_package("Kerala Backwaters")
    second = client.get("/api/home").json()

    assert len(second["packages"]) == 2


def test_health_probes(client, make_package):
    make_package()

    health = client.get("/api/health/").json()

    assert health["status"] == "healthy"
    assert health["packages"] == 1
    assert client.get("/api/health/ready").json()["ready"] is True
    assert client.get("/api/health/live").json()["alive"] is True


def test_errors_use_error_envelope(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert "error" in response.json()

    invalid = client.get("/api/packages", params={"min_price": "cheap"})
    assert invalid.status_code == 400
    assert "error" in invalid.json()
