"""Thin client for the Google Photos Picker API."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from mediarelay.core.exceptions import UpstreamResponseError

logger = logging.getLogger(__name__)

PHOTOS_PICKER_API = "https://photospicker.googleapis.com/v1"


@dataclass
class PickerReply:
    """Upstream status code and decoded JSON body, relayed as-is."""

    status_code: int
    payload: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class PhotosPickerApi:
    """Session create / status / selected-items calls against the picker API."""

    def __init__(self, client: httpx.AsyncClient, base_url: str = PHOTOS_PICKER_API):
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def create_session(self, access_token: str) -> PickerReply:
        """Open a new picker session; the payload carries ``id`` and ``pickerUri``."""
        response = await self._client.post(
            f"{self._base_url}/sessions",
            headers={"Authorization": f"Bearer {access_token}"},
            json={},
        )
        return self._decode(response)

    async def get_session(self, session_id: str, access_token: str) -> PickerReply:
        """Fetch session status; ``mediaItemsSet`` turns true once the user is done."""
        response = await self._client.get(
            f"{self._base_url}/sessions/{session_id}",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        return self._decode(response)

    async def list_items(
        self, session_id: str, access_token: str, page_token: Optional[str] = None
    ) -> PickerReply:
        """Fetch one page of the items selected in *session_id*."""
        params = {"sessionId": session_id}
        if page_token:
            params["pageToken"] = page_token
        response = await self._client.get(
            f"{self._base_url}/mediaItems",
            headers={"Authorization": f"Bearer {access_token}"},
            params=params,
        )
        logger.info(
            "Picker mediaItems response",
            extra={"session_id": session_id, "status_code": response.status_code},
        )
        return self._decode(response)

    @staticmethod
    def _decode(response: httpx.Response) -> PickerReply:
        try:
            payload = response.json()
        except ValueError as e:
            logger.error(
                "Picker API returned non-JSON body",
                extra={"status_code": response.status_code, "body": response.text[:200]},
            )
            raise UpstreamResponseError(
                "Invalid response from Google Photos API", details=response.text[:200]
            ) from e
        return PickerReply(status_code=response.status_code, payload=payload)
