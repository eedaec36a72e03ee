"""Provider-to-provider transfers from Google Drive / Google Photos into OneDrive."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from mediarelay.core.exceptions import RelayError, UploadError
from mediarelay.models.upload import RemoteObjectDescriptor
from mediarelay.storage.chunked_upload import DEFAULT_CONTENT_TYPE, ChunkedUploadEngine, sanitize_file_name

logger = logging.getLogger(__name__)

GOOGLE_DRIVE_API = "https://www.googleapis.com/drive/v3"


class SourceDescriptor(ABC):
    """An object held by an external provider."""

    source_name: str

    @abstractmethod
    def download_url(self) -> str:
        pass

    @abstractmethod
    def fallback_name(self) -> str:
        """Name used when the caller supplies none."""
        pass

    default_mime_type: str = DEFAULT_CONTENT_TYPE


@dataclass(frozen=True)
class GoogleDriveSource(SourceDescriptor):
    file_id: str

    source_name = "google-drive"

    def download_url(self) -> str:
        return f"{GOOGLE_DRIVE_API}/files/{self.file_id}?alt=media"

    def fallback_name(self) -> str:
        return f"file_{self.file_id}"


@dataclass(frozen=True)
class GooglePhotosSource(SourceDescriptor):
    base_url: str
    media_item_id: Optional[str] = None

    source_name = "google-photos"
    default_mime_type = "image/jpeg"

    def download_url(self) -> str:
        # "=d" asks for the original bytes, including metadata
        return f"{self.base_url}&d" if "?" in self.base_url else f"{self.base_url}=d"

    def fallback_name(self) -> str:
        return f"photo_{self.media_item_id}.jpg"


class TransferRelay:
    """Downloads a source object into memory and re-uploads it through the engine.

    Transfers are never retried here; a failed item is reported to the caller
    and the next item proceeds independently.
    """

    def __init__(self, client: httpx.AsyncClient, engine: ChunkedUploadEngine, max_bytes: int):
        self._client = client
        self._engine = engine
        self._max_bytes = max_bytes

    async def download(self, source: SourceDescriptor, source_token: str) -> bytes:
        """Fetch the complete source object with the caller's bearer token."""
        try:
            response = await self._client.get(
                source.download_url(),
                headers={"Authorization": f"Bearer {source_token}"},
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            raise RelayError(f"Failed to download from {source.source_name}: {e}") from e

        if not response.is_success:
            logger.error(
                "Source download failed",
                extra={"source": source.source_name, "status_code": response.status_code, "body": response.text[:500]},
            )
            raise RelayError(f"Failed to download from {source.source_name}: {response.status_code}")

        content = response.content
        if len(content) > self._max_bytes:
            raise RelayError(f"Source object exceeds {self._max_bytes // (1024 * 1024)}MB limit")
        return content

    async def relay(
        self,
        source: SourceDescriptor,
        source_token: str,
        name_hint: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> RemoteObjectDescriptor:
        """Copy *source* into the destination folder.

        Raises:
            RelayError: Wrapping the download or the upload failure
        """
        content = await self.download(source, source_token)
        file_name = sanitize_file_name(name_hint or source.fallback_name())

        logger.info(
            "Downloaded source object, uploading",
            extra={"source": source.source_name, "size_bytes": len(content), "file_name": file_name},
        )

        try:
            return await self._engine.upload(
                content,
                file_name,
                len(content),
                content_type=mime_type or source.default_mime_type,
            )
        except UploadError as e:
            raise RelayError(str(e)) from e
