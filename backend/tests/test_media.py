"""Media uploads against a mocked Cloudinary endpoint."""

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest

from travel_cms.main import app
from travel_cms.services.media import (
    UPLOAD_TRANSFORMATION,
    MediaStore,
    MediaUploadError,
    get_media_store,
    sign_params,
)

SECURE_URL = "https://res.cloudinary.com/demo/image/upload/v1/thapa-holidays/goa.jpg"


def _cloudinary(requests):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"secure_url": SECURE_URL})
    return httpx.MockTransport(handler)


def test_upload_signs_request_and_returns_secure_url():
    requests = []
    store = MediaStore("demo", "key", "secret", transport=_cloudinary(requests))

    url = asyncio.run(store.upload_image("data:image/png;base64,AAAA"))

    assert url == SECURE_URL
    sent = requests[0]
    assert str(sent.url) == "https://api.cloudinary.com/v1_1/demo/image/upload"
    form = {k: v[0] for k, v in parse_qs(sent.content.decode()).items()}
    assert form["transformation"] == UPLOAD_TRANSFORMATION
    assert form["folder"] == "thapa-holidays"
    assert form["api_key"] == "key"
    assert form["signature"] == sign_params(
        {"folder": form["folder"], "timestamp": form["timestamp"], "transformation": UPLOAD_TRANSFORMATION},
        "secret",
    )


def test_upstream_error_raises_upload_error():
    store = MediaStore(
        "demo", "key", "secret",
        transport=httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "boom"})),
    )

    with pytest.raises(MediaUploadError):
        asyncio.run(store.upload_image("data:image/png;base64,AAAA"))


def test_unconfigured_store_refuses():
    with pytest.raises(MediaUploadError):
        asyncio.run(MediaStore("", "", "").upload_image("data:image/png;base64,AAAA"))


def test_upload_endpoint(client, admin_headers):
    requests = []
    app.dependency_overrides[get_media_store] = lambda: MediaStore("demo", "key", "secret", transport=_cloudinary(requests))

    anonymous = client.post("/api/upload", json={"file": "data:image/png;base64,AAAA"})
    empty = client.post("/api/upload", json={}, headers=admin_headers)
    uploaded = client.post(
        "/api/upload", json={"file": "data:image/png;base64,AAAA", "folder": "blog"}, headers=admin_headers
    )

    assert anonymous.status_code == 401
    assert empty.status_code == 400
    assert uploaded.json() == {"url": SECURE_URL}
    assert len(requests) == 1


def test_upload_endpoint_without_configuration(client, admin_headers):
    app.dependency_overrides[get_media_store] = lambda: MediaStore("", "", "")

    response = client.post("/api/upload", json={"file": "data:image/png;base64,AAAA"}, headers=admin_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to upload image"}
