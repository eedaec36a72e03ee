"""HTTP client for the relay endpoints."""

import asyncio
import logging
from typing import Any, Awaitable, BinaryIO, Callable, Optional, Union

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from mediarelay.core.exceptions import RelayRequestError
from mediarelay.models.gallery import GalleryResponse

logger = logging.getLogger(__name__)

MAX_UPLOAD_ATTEMPTS = 3
RETRY_BASE_SECONDS = 1
RETRY_FACTOR = 2

Sleep = Callable[[float], Awaitable[None]]


def is_retryable(error: BaseException) -> bool:
    """Retry transport failures, 5xx and 429. Other 4xx are final."""
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, RelayRequestError) and error.status_code is not None:
        return error.status_code >= 500 or error.status_code == 429
    return False


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"Relay upload failed (attempt {retry_state.attempt_number}/{MAX_UPLOAD_ATTEMPTS}), retrying",
        extra={
            "attempt": retry_state.attempt_number,
            "error": str(error),
            "status_code": getattr(error, "status_code", None),
            "next_delay": retry_state.next_action.sleep if retry_state.next_action else None,
        },
    )


class RelayClient:
    """Calls the relay service on behalf of a client session.

    Only ``upload_file`` is retried; transfers from Google and the picker
    proxy calls fail on the first error.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        sleep: Sleep = asyncio.sleep,
        max_attempts: int = MAX_UPLOAD_ATTEMPTS,
    ):
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._sleep = sleep
        self._max_attempts = max_attempts

    def _url(self, path: str) -> str:
        return f"{self._base_url}{path}"

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            body = response.json()
        except ValueError:
            body = None
        message = body.get("error") if isinstance(body, dict) else None
        raise RelayRequestError(message or f"HTTP {response.status_code}", status_code=response.status_code)

    async def upload_file(
        self,
        content: Union[bytes, BinaryIO],
        file_name: str,
        mime_type: Optional[str],
        password: str,
    ) -> dict[str, Any]:
        """POST one file to ``/upload``, retrying with exponential backoff.

        Raises:
            RelayRequestError: On a final non-2xx answer
            httpx.TransportError: If the relay stays unreachable
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=RETRY_BASE_SECONDS, exp_base=RETRY_FACTOR),
            retry=retry_if_exception(is_retryable),
            before_sleep=_log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                if hasattr(content, "seek"):
                    content.seek(0)
                response = await self._client.post(
                    self._url("/upload"),
                    files={"file": (file_name, content, mime_type or "application/octet-stream")},
                    data={"password": password},
                )
                self._raise_for_status(response)
                return response.json()

    async def list_gallery(self, password: str) -> GalleryResponse:
        response = await self._client.get(self._url("/gallery"), params={"password": password})
        self._raise_for_status(response)
        return GalleryResponse.model_validate(response.json())

    async def upload_from_google_drive(
        self,
        file_id: str,
        file_name: Optional[str],
        mime_type: Optional[str],
        access_token: str,
        password: Optional[str] = None,
    ) -> dict[str, Any]:
        payload = {
            "fileId": file_id,
            "fileName": file_name,
            "mimeType": mime_type,
            "googleAccessToken": access_token,
        }
        if password:
            payload["password"] = password
        response = await self._client.post(self._url("/upload-from-google"), json=payload)
        self._raise_for_status(response)
        return response.json()

    async def upload_from_google_photos(
        self,
        media_item_id: str,
        file_name: Optional[str],
        mime_type: Optional[str],
        base_url: Optional[str],
        access_token: str,
    ) -> dict[str, Any]:
        response = await self._client.post(
            self._url("/upload-from-google-photos"),
            json={
                "mediaItemId": media_item_id,
                "fileName": file_name,
                "mimeType": mime_type,
                "baseUrl": base_url,
                "googleAccessToken": access_token,
            },
        )
        self._raise_for_status(response)
        return response.json()

    async def create_photos_session(self, access_token: str) -> dict[str, Any]:
        response = await self._client.post(self._url("/photos-session"), json={"accessToken": access_token})
        self._raise_for_status(response)
        return response.json()

    async def get_photos_session(self, session_id: str, access_token: str) -> dict[str, Any]:
        response = await self._client.get(
            self._url(f"/photos-session/{session_id}"),
            params={"accessToken": access_token},
        )
        self._raise_for_status(response)
        return response.json()

    async def list_photos_items(
        self, session_id: str, access_token: str, page_token: Optional[str] = None
    ) -> dict[str, Any]:
        params = {"accessToken": access_token}
        if page_token:
            params["pageToken"] = page_token
        response = await self._client.get(self._url(f"/photos-session/{session_id}/items"), params=params)
        self._raise_for_status(response)
        return response.json()
