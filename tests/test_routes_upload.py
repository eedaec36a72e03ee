"""Tests for the upload routes."""

import io

import httpx
import pytest
from fastapi.testclient import TestClient

from mediarelay.core.config import settings
from mediarelay.main import app


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


def relay_handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "login.microsoftonline.com":
        return httpx.Response(200, json={"access_token": "graph-token", "expires_in": 3600})
    if request.url.host == "graph.microsoft.com":
        name = request.url.path.split(":/")[1]
        return httpx.Response(
            201,
            json={"id": "item-1", "name": name, "size": len(request.content), "webUrl": f"https://1drv.ms/{name}"},
        )
    # Google download
    return httpx.Response(200, content=b"google-bytes")


def test_upload_valid_file(client, provider):
    recorder = provider(relay_handler)
    content = b"\xff\xd8" * 1024
    files = {"file": ("holiday.jpg", io.BytesIO(content), "image/jpeg")}

    response = client.post("/upload", files=files, data={"password": settings.SITE_PASSWORD})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "fileName": "holiday.jpg",
        "size": len(content),
        "webUrl": "https://1drv.ms/holiday.jpg",
    }
    token_request, upload_request = recorder.requests
    assert token_request.url.host == "login.microsoftonline.com"
    assert upload_request.url.path == "/v1.0/drives/drive-123/items/folder-456:/holiday.jpg:/content"
    assert upload_request.headers["Content-Type"] == "image/jpeg"


def test_upload_wrong_password_never_reaches_provider(client, provider):
    recorder = provider(relay_handler)
    files = {"file": ("holiday.jpg", io.BytesIO(b"data"), "image/jpeg")}

    response = client.post("/upload", files=files, data={"password": "wrong"})

    assert response.status_code == 401
    assert response.json() == {"error": "Password non valida"}
    assert recorder.requests == []


def test_upload_missing_password(client, provider):
    recorder = provider(relay_handler)
    files = {"file": ("holiday.jpg", io.BytesIO(b"data"), "image/jpeg")}

    response = client.post("/upload", files=files)

    assert response.status_code == 401
    assert recorder.requests == []


def test_upload_without_file(client, provider):
    provider(relay_handler)

    response = client.post("/upload", data={"password": settings.SITE_PASSWORD})

    assert response.status_code == 400
    assert response.json() == {"error": "No file provided"}


def test_upload_too_large(client, provider, monkeypatch):
    monkeypatch.setattr(settings, "MAX_FILE_SIZE_MB", 1)
    recorder = provider(relay_handler)
    files = {"file": ("big.mp4", io.BytesIO(b"\x00" * (1024 * 1024 + 1)), "video/mp4")}

    response = client.post("/upload", files=files, data={"password": settings.SITE_PASSWORD})

    assert response.status_code == 400
    assert response.json() == {"error": "File too large. Max size: 1MB"}
    assert recorder.requests == []


def test_upload_storage_failure_is_500(client, provider):
    def handler(request):
        if request.url.host == "login.microsoftonline.com":
            return httpx.Response(200, json={"access_token": "graph-token"})
        return httpx.Response(507, json={"error": {"code": "quotaLimitReached"}})

    provider(handler)
    files = {"file": ("holiday.jpg", io.BytesIO(b"data"), "image/jpeg")}

    response = client.post("/upload", files=files, data={"password": settings.SITE_PASSWORD})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to upload file"}


def test_upload_token_refresh_failure_is_500(client, provider):
    provider(lambda request: httpx.Response(400, json={"error": "invalid_grant"}))
    files = {"file": ("holiday.jpg", io.BytesIO(b"data"), "image/jpeg")}

    response = client.post("/upload", files=files, data={"password": settings.SITE_PASSWORD})

    assert response.status_code == 500
    assert "error" in response.json()


def test_upload_from_google_drive(client, provider):
    recorder = provider(relay_handler)

    response = client.post(
        "/upload-from-google",
        json={"fileId": "abc", "fileName": "beach.jpg", "mimeType": "image/jpeg", "googleAccessToken": "g-token"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["source"] == "google-drive"
    assert data["fileName"] == "beach.jpg"
    assert data["size"] == len(b"google-bytes")
    download = next(r for r in recorder.requests if r.url.host == "www.googleapis.com")
    assert download.headers["Authorization"] == "Bearer g-token"


def test_upload_from_google_checks_password_when_present(client, provider):
    recorder = provider(relay_handler)

    response = client.post(
        "/upload-from-google",
        json={"fileId": "abc", "googleAccessToken": "g-token", "password": "wrong"},
    )

    assert response.status_code == 401
    assert recorder.requests == []


def test_upload_from_google_missing_fields(client, provider):
    provider(relay_handler)

    response = client.post("/upload-from-google", json={"fileName": "x.jpg"})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing fileId or googleAccessToken"}


def test_upload_from_google_download_failure(client, provider):
    def handler(request):
        if request.url.host == "www.googleapis.com":
            return httpx.Response(403, json={"error": {"message": "forbidden"}})
        return relay_handler(request)

    provider(handler)

    response = client.post("/upload-from-google", json={"fileId": "abc", "googleAccessToken": "g-token"})

    assert response.status_code == 500
    assert "google-drive" in response.json()["error"]


def test_upload_from_google_photos(client, provider):
    recorder = provider(relay_handler)

    response = client.post(
        "/upload-from-google-photos",
        json={
            "mediaItemId": "m1",
            "baseUrl": "https://lh3.googleusercontent.com/xyz",
            "googleAccessToken": "g-token",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["source"] == "google-photos"
    assert data["fileName"] == "photo_m1.jpg"
    assert str(recorder.requests[0].url) == "https://lh3.googleusercontent.com/xyz=d"


def test_upload_from_google_photos_missing_fields(client, provider):
    provider(relay_handler)

    response = client.post("/upload-from-google-photos", json={"mediaItemId": "m1"})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing baseUrl or googleAccessToken"}


def test_invalid_json_body_is_400(client, provider):
    provider(relay_handler)

    response = client.post(
        "/upload-from-google-photos",
        content=b"not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert "error" in response.json()
