"""Testimonial visibility and moderation; package reviews."""

from travel_cms.db import models


def _submit(client, headers=None, **fields):
    payload = dict({"name": "Asha", "comment": "Wonderful trip!"}, **fields)
    return client.post("/api/testimonials", json=payload, headers=headers or {})


def test_public_submission_is_always_pending(client):
    response = _submit(client, status="APPROVED", featured=True, is_admin=True)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "PENDING"
    assert body["featured"] is False
    assert body["rating"] == 5


def test_non_admin_session_cannot_approve(client, user_headers):
    body = _submit(client, headers=user_headers, status="APPROVED", featured=True).json()
    assert body["status"] == "PENDING"
    assert body["featured"] is False


def test_admin_submission_defaults_to_approved(client, admin_headers):
    body = _submit(client, headers=admin_headers, featured=True).json()
    assert body["status"] == "APPROVED"
    assert body["featured"] is True

    rejected = _submit(client, headers=admin_headers, status="REJECTED").json()
    assert rejected["status"] == "REJECTED"


def test_submission_requires_name_and_comment(client):
    response = client.post("/api/testimonials", json={"name": "Asha"})
    assert response.status_code == 400
    assert response.json() == {"error": "Name and comment are required"}


def test_public_listing_only_shows_approved(client, admin_headers):
    _submit(client, name="Pending Pat")
    _submit(client, headers=admin_headers, name="Approved Ann")
    _submit(client, headers=admin_headers, name="Rejected Rob", status="REJECTED")

    public = client.get("/api/testimonials").json()
    widened = client.get("/api/testimonials", params={"approval_status": "PENDING", "status": "REJECTED"}).json()

    assert [t["name"] for t in public["testimonials"]] == ["Approved Ann"]
    assert public["total"] == 1
    assert public["page"] == 1
    assert public["total_pages"] == 1
    assert [t["name"] for t in widened["testimonials"]] == ["Approved Ann"]


def test_include_all_listing(client, admin_headers):
    _submit(client, name="Pending Pat")
    _submit(client, headers=admin_headers, name="Approved Ann")

    def listing(**params):
        return client.get("/api/testimonials", params=dict(params, include_all="true"), headers=admin_headers).json()

    everything = listing()
    pending = listing(approval_status="PENDING")
    legacy = listing(status="ACTIVE")

    assert everything["total"] == 2
    assert [t["name"] for t in pending["testimonials"]] == ["Pending Pat"]
    assert [t["name"] for t in legacy["testimonials"]] == ["Approved Ann"]


def test_include_all_needs_an_admin_session(client, admin_headers, user_headers):
    _submit(client, name="Pending Pat")
    _submit(client, headers=admin_headers, name="Approved Ann")
    _submit(client, headers=admin_headers, name="Rejected Rob", status="REJECTED")
    params = {"include_all": "true", "approval_status": "PENDING"}

    anonymous = client.get("/api/testimonials", params=params).json()
    signed_in = client.get("/api/testimonials", params=params, headers=user_headers).json()
    admin = client.get("/api/testimonials", params=params, headers=admin_headers).json()

    assert [t["name"] for t in anonymous["testimonials"]] == ["Approved Ann"]
    assert [t["name"] for t in signed_in["testimonials"]] == ["Approved Ann"]
    assert [t["name"] for t in admin["testimonials"]] == ["Pending Pat"]

    # a moderation listing must not leak into the public cache
    assert [t["name"] for t in client.get("/api/testimonials").json()["testimonials"]] == ["Approved Ann"]


def test_submission_with_unknown_package_is_stored_unlinked(client, make_package):
    package = make_package("Goa Beach Escape")

    unknown = _submit(client, package_id="no-such-package")
    linked = _submit(client, package_id=package["id"])

    assert unknown.status_code == 201
    assert unknown.json()["package_id"] is None
    assert linked.json()["package_id"] == package["id"]


def test_pagination(client, admin_headers):
    for i in range(5):
        _submit(client, headers=admin_headers, name=f"Guest {i}")

    page = client.get("/api/testimonials", params={"limit": 2, "page": 3, "sort": "newest"}).json()

    assert page["total"] == 5
    assert page["total_pages"] == 3
    assert len(page["testimonials"]) == 1


def test_moderation(client, admin_headers):
    pending = _submit(client).json()
    assert client.get("/api/testimonials").json()["total"] == 0

    invalid = client.put("/api/testimonials", json={"id": pending["id"], "status": "ACTIVE"}, headers=admin_headers)
    missing = client.put("/api/testimonials", json={"id": "nope", "status": "APPROVED"}, headers=admin_headers)
    anonymous = client.put("/api/testimonials", json={"id": pending["id"], "status": "APPROVED"})
    approved = client.put(
        "/api/testimonials", json={"id": pending["id"], "status": "APPROVED", "featured": True}, headers=admin_headers
    )

    assert invalid.status_code == 400
    assert missing.status_code == 404
    assert anonymous.status_code == 401
    assert approved.json()["status"] == "APPROVED"
    assert approved.json()["featured"] is True
    assert client.get("/api/testimonials").json()["total"] == 1


def test_delete_testimonial(client, admin_headers, db_session):
    created = _submit(client).json()

    assert client.delete(f"/api/testimonials/{created['id']}").status_code == 401
    assert client.delete(f"/api/testimonials/{created['id']}", headers=admin_headers).status_code == 200
    assert db_session.query(models.Testimonial).count() == 0


def test_review_moderation_updates_package_rating(client, admin_headers, make_package):
    package = make_package("Spiti Valley")

    first = client.post(
        "/api/reviews", json={"package_id": package["id"], "name": "Ravi", "rating": 4, "comment": "Great"}
    )
    second = client.post(
        "/api/reviews", json={"package_id": package["id"], "name": "Meera", "rating": 5, "comment": "Superb"}
    )
    assert first.status_code == 201
    assert first.json()["review"]["status"] == "PENDING"
    assert client.get("/api/reviews", params={"package_id": package["id"]}).json()["total"] == 0

    for created in (first, second):
        client.put("/api/reviews", json={"id": created.json()["review"]["id"], "status": "APPROVED"},
                   headers=admin_headers)

    detail = client.get(f"/api/packages/{package['id']}").json()
    assert detail["reviews"] == 2
    assert detail["rating"] == 4.5
    assert client.get("/api/reviews", params={"package_id": package["id"]}).json()["total"] == 2

    client.delete("/api/reviews", params={"id": second.json()["review"]["id"]}, headers=admin_headers)
    detail = client.get(f"/api/packages/{package['id']}").json()
    assert detail["reviews"] == 1
    assert detail["rating"] == 4.0


def test_review_validation(client, make_package):
    package = make_package("Draft Trip", status="INACTIVE")

    bad_rating = client.post(
        "/api/reviews", json={"package_id": package["id"], "name": "A", "rating": 6, "comment": "x"}
    )
    inactive = client.post(
        "/api/reviews", json={"package_id": package["id"], "name": "A", "rating": 3, "comment": "x"}
    )

    assert bad_rating.status_code == 400
    assert inactive.status_code == 404
    assert client.get("/api/reviews").status_code == 400


def test_review_helpful_counter(client, admin_headers, make_package):
    package = make_package("Meghalaya Caves")
    review = client.post(
        "/api/reviews", json={"package_id": package["id"], "name": "Ravi", "rating": 4, "comment": "Great"}
    ).json()["review"]

    response = client.patch("/api/reviews", json={"id": review["id"], "action": "helpful"})

    assert response.json()["helpful"] == 1
    assert client.patch("/api/reviews", json={"id": review["id"], "action": "dislike"}).status_code == 400
