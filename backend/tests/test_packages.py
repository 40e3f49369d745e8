"""Package CRUD, duplication and the admin gate."""

from travel_cms.db import models


def test_create_requires_admin_and_writes_nothing(client, user_headers, db_session):
    payload = {"name": "Goa Beach Escape", "price": 15000}

    anonymous = client.post("/api/packages", json=payload)
    as_user = client.post("/api/packages", json=payload, headers=user_headers)
    forged = client.post("/api/packages", json=payload, headers={"Authorization": "Bearer not-a-token"})

    for response in (anonymous, as_user, forged):
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}
    assert db_session.query(models.Package).count() == 0


def test_create_applies_defaults(client, admin_headers):
    response = client.post(
        "/api/packages",
        json={"name": "Goa Beach Escape", "price": 15000, "location": "North Goa"},
        headers=admin_headers,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["slug"] == "goa-beach-escape"
    assert body["country"] == "India"
    assert body["difficulty"] == "EASY"
    assert body["type"] == "PREMIUM"
    assert body["status"] == "ACTIVE"
    assert body["featured"] is False
    assert body["destination_name"] == "North Goa"


def test_create_validates_required_fields(client, admin_headers):
    missing_price = client.post("/api/packages", json={"name": "No Price"}, headers=admin_headers)
    blank_name = client.post("/api/packages", json={"name": "  ", "price": 10}, headers=admin_headers)

    assert missing_price.status_code == 400
    assert blank_name.status_code == 400
    assert missing_price.json()["error"] == "Name and price are required"


def test_slug_collisions_get_numeric_suffix(make_package):
    first = make_package("Goa Beach Escape")
    second = make_package("Goa Beach Escape")
    third = make_package("Goa -- Beach Escape!")

    assert [first["slug"], second["slug"], third["slug"]] == [
        "goa-beach-escape", "goa-beach-escape-2", "goa-beach-escape-3"
    ]


def test_get_by_id_or_slug(client, make_package):
    package = make_package("Kerala Backwaters", accommodations=[{"hotel_name": "Lake Palace", "nights": 2}])

    by_slug = client.get("/api/packages/kerala-backwaters")
    by_id = client.get(f"/api/packages/{package['id']}")
    missing = client.get("/api/packages/nowhere")

    assert by_slug.status_code == 200
    assert by_id.json()["id"] == by_slug.json()["id"] == package["id"]
    assert by_slug.json()["accommodations"][0]["hotel_name"] == "Lake Palace"
    assert missing.status_code == 404
    assert missing.json() == {"error": "Package not found"}


def test_list_filters_and_ordering(client, make_package):
    make_package("Budget Sikkim", price=8000, type="BUDGET")
    make_package("Luxury Ladakh", price=55000, featured=True)
    make_package("Hidden Draft", price=20000, status="INACTIVE")

    everything = client.get("/api/packages").json()
    assert everything[0]["name"] == "Luxury Ladakh"
    assert len(everything) == 3

    active = client.get("/api/packages", params={"status": "ACTIVE"}).json()
    assert {p["name"] for p in active} == {"Budget Sikkim", "Luxury Ladakh"}

    ranged = client.get("/api/packages", params={"min_price": 10000, "max_price": 30000}).json()
    assert [p["name"] for p in ranged] == ["Hidden Draft"]

    budget = client.get("/api/packages", params={"type": "BUDGET"}).json()
    assert [p["name"] for p in budget] == ["Budget Sikkim"]
    assert budget[0]["destination_name"] == "Unknown"

    assert len(client.get("/api/packages", params={"limit": 1}).json()) == 1


def test_list_resolves_destination_name(client, admin_headers, make_package):
    destination = client.post("/api/destinations", json={"name": "Darjeeling"}, headers=admin_headers).json()
    make_package("Tea Garden Trail", destination_id=destination["id"], destination_name="Old Name")

    listed = client.get("/api/packages").json()[0]

    assert listed["destination_name"] == "Darjeeling"
    assert listed["destination"] == {"id": destination["id"], "name": "Darjeeling", "slug": "darjeeling"}


def test_mutation_invalidates_cached_list(client, admin_headers, make_package):
    package = make_package("Andaman Islands")
    assert client.get("/api/packages").json()[0]["price"] == 15000

    updated = client.put(f"/api/packages/{package['id']}", json={"price": 17500}, headers=admin_headers)

    assert updated.status_code == 200
    assert client.get("/api/packages").json()[0]["price"] == 17500
    assert client.get("/api/packages/andaman-islands").json()["price"] == 17500


def test_update_only_touches_provided_fields(client, admin_headers, make_package):
    package = make_package("Rajasthan Royal", description="Forts and palaces")

    response = client.put(f"/api/packages/{package['id']}", json={"badge": "Bestseller"}, headers=admin_headers)

    body = response.json()
    assert body["badge"] == "Bestseller"
    assert body["description"] == "Forts and palaces"
    assert body["updated_at"] >= package["updated_at"]


def test_update_and_delete_missing_package(client, admin_headers):
    assert client.put("/api/packages/missing", json={"price": 1}, headers=admin_headers).status_code == 404
    assert client.delete("/api/packages/missing", headers=admin_headers).status_code == 404


def test_delete(client, admin_headers, make_package):
    package = make_package()

    response = client.delete(f"/api/packages/{package['id']}", headers=admin_headers)

    assert response.status_code == 200
    assert client.get(f"/api/packages/{package['id']}").status_code == 404


def test_duplicate_creates_inactive_copy(client, admin_headers, make_package):
    source = make_package(
        "Goa Beach Escape",
        featured=True,
        highlights=["Beaches", "Forts"],
        itinerary=[{"day": 1, "title": "Arrival"}],
        accommodations=[{"hotel_name": "Taj Fort Aguada", "nights": 3}],
    )

    first = client.post(f"/api/packages/{source['id']}/duplicate", headers=admin_headers)
    second = client.post(f"/api/packages/{source['id']}/duplicate", headers=admin_headers)

    assert first.status_code == second.status_code == 201
    copy = first.json()
    assert copy["slug"] == "goa-beach-escape-copy"
    assert second.json()["slug"] == "goa-beach-escape-copy-2"
    assert copy["id"] != source["id"]
    assert copy["status"] == "INACTIVE"
    assert copy["featured"] is False
    for field in ("name", "price", "highlights", "itinerary", "country", "type"):
        assert copy[field] == source[field]
    assert [a["hotel_name"] for a in copy["accommodations"]] == ["Taj Fort Aguada"]


def test_duplicate_missing_package(client, admin_headers):
    response = client.post("/api/packages/missing/duplicate", headers=admin_headers)
    assert response.status_code == 404
