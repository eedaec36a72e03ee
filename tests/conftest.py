"""Pytest configuration and shared fixtures."""

from typing import Callable

import httpx
import pytest

from mediarelay.api.dependencies import get_http_client
from mediarelay.core.config import settings
from mediarelay.main import app

SITE_PASSWORD = "letmein"
DRIVE_ID = "drive-123"
FOLDER_ID = "folder-456"


@pytest.fixture(autouse=True)
def relay_settings(monkeypatch):
    """Configure the relay with test credentials and a known folder."""
    monkeypatch.setattr(settings, "SITE_PASSWORD", SITE_PASSWORD)
    monkeypatch.setattr(settings, "AZURE_CLIENT_ID", "client-id")
    monkeypatch.setattr(settings, "AZURE_CLIENT_SECRET", "client-secret")
    monkeypatch.setattr(settings, "AZURE_REFRESH_TOKEN", "refresh-token")
    monkeypatch.setattr(settings, "AZURE_TENANT", "common")
    monkeypatch.setattr(settings, "ONEDRIVE_DRIVE_ID", DRIVE_ID)
    monkeypatch.setattr(settings, "ONEDRIVE_FOLDER_ID", FOLDER_ID)
    monkeypatch.setattr(settings, "MAX_FILE_SIZE_MB", 500)
    monkeypatch.setattr(settings, "TOKEN_CACHE_ENABLED", False)
    return settings


class RecordingHandler:
    """MockTransport handler that records every outbound request."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self._handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def hosts(self) -> list[str]:
        return [r.url.host for r in self.requests]


def token_response(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"access_token": "graph-token", "expires_in": 3600})


@pytest.fixture
def recording():
    """Factory wrapping a handler in a RecordingHandler."""
    return RecordingHandler


@pytest.fixture
def provider():
    """Route the relay's outbound HTTP through a mock handler.

    Usage: ``recorder = provider(handler)``; the returned recorder lists
    every request the relay made.
    """

    def install(handler: Callable[[httpx.Request], httpx.Response]) -> RecordingHandler:
        recorder = RecordingHandler(handler)

        async def override_client():
            async with httpx.AsyncClient(transport=httpx.MockTransport(recorder)) as client:
                yield client

        app.dependency_overrides[get_http_client] = override_client
        return recorder

    yield install
    app.dependency_overrides.pop(get_http_client, None)
