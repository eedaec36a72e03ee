"""Single-shot and resumable chunked uploads to a OneDrive folder."""

import logging
import re
from dataclasses import dataclass
from typing import Awaitable, BinaryIO, Callable, Optional, Union

import httpx

from mediarelay.core.exceptions import UploadError
from mediarelay.core.logging import file_name_context
from mediarelay.models.upload import RemoteObjectDescriptor
from mediarelay.storage.base import DriveLocation

logger = logging.getLogger(__name__)

SMALL_UPLOAD_THRESHOLD = 4 * 1024 * 1024
DEFAULT_CHUNK_SIZE = 5 * 1024 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"
CONFLICT_BEHAVIOR = "rename"

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|]')
_WHITESPACE_RUN = re.compile(r"\s+")

ByteSource = Union[bytes, bytearray, memoryview, BinaryIO]
ProgressSink = Callable[[int, int], None]
TokenProvider = Callable[[], Awaitable[str]]


def sanitize_file_name(name: str) -> str:
    """Make a file name safe to use as a OneDrive path segment.

    Replaces ``\\ / : * ? " < > |`` with ``_``, collapses whitespace runs
    to a single space and trims the result.
    """
    return _WHITESPACE_RUN.sub(" ", _UNSAFE_CHARS.sub("_", name)).strip()


def read_window(source: ByteSource, start: int, end: int) -> bytes:
    """Read bytes ``[start, end)`` from an in-memory buffer or a seekable file."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source[start:end])
    source.seek(start)
    return source.read(end - start)


def _drive_item(response: httpx.Response) -> RemoteObjectDescriptor:
    """Validate a finalized drive item body.

    Raises:
        UploadError: If the body is not JSON or not a drive item
    """
    try:
        return RemoteObjectDescriptor.model_validate(response.json())
    except ValueError as e:
        logger.error(
            "Invalid drive item in upload response",
            extra={"status_code": response.status_code, "error": str(e)},
        )
        raise UploadError("Invalid response from storage provider", status_code=response.status_code) from e


@dataclass
class UploadSession:
    """Provider-allocated resumable upload session."""

    upload_url: str
    total_size: int
    bytes_acknowledged: int = 0

    def next_range(self, chunk_size: int) -> tuple[int, int]:
        """Return the ``[start, end)`` window of the next chunk."""
        start = self.bytes_acknowledged
        return start, min(start + chunk_size, self.total_size)

    @property
    def complete(self) -> bool:
        return self.bytes_acknowledged >= self.total_size


class ChunkedUploadEngine:
    """Uploads byte sources into a drive folder.

    Objects below ``small_threshold`` go up in one PUT. Larger objects open an
    upload session and stream ``chunk_size`` windows strictly in sequence.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        location: DriveLocation,
        token_provider: TokenProvider,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        small_threshold: int = SMALL_UPLOAD_THRESHOLD,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._client = client
        self._location = location
        self._token_provider = token_provider
        self.chunk_size = chunk_size
        self.small_threshold = small_threshold

    async def upload(
        self,
        source: ByteSource,
        name: str,
        total_size: int,
        content_type: Optional[str] = None,
        progress: Optional[ProgressSink] = None,
    ) -> RemoteObjectDescriptor:
        """Upload *source* under the sanitized *name*.

        Args:
            source: Bytes or seekable binary stream holding the object
            name: Declared file name
            total_size: Exact object length in bytes
            content_type: Declared MIME type (single-shot uploads only)
            progress: Called with ``(bytes_acknowledged, total_size)``

        Returns:
            Descriptor of the finalized remote object

        Raises:
            UploadError: On any non-2xx provider response
        """
        file_name = sanitize_file_name(name)
        token_ref = file_name_context.set(file_name)
        try:
            access_token = await self._token_provider()

            if total_size < self.small_threshold:
                result = await self._upload_small(source, file_name, total_size, content_type, access_token)
                if progress:
                    progress(total_size, total_size)
                return result

            session = await self.open_session(file_name, total_size, access_token)
            return await self.upload_chunks(session, source, progress)
        finally:
            file_name_context.reset(token_ref)

    async def _upload_small(
        self,
        source: ByteSource,
        file_name: str,
        total_size: int,
        content_type: Optional[str],
        access_token: str,
    ) -> RemoteObjectDescriptor:
        response = await self._send(
            "PUT",
            self._location.content_url(file_name),
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": content_type or DEFAULT_CONTENT_TYPE,
            },
            content=read_window(source, 0, total_size),
        )
        if not response.is_success:
            logger.error(
                "Upload failed",
                extra={"status_code": response.status_code, "body": response.text[:500]},
            )
            raise UploadError("Failed to upload file", status_code=response.status_code)

        logger.info(
            "Uploaded small file",
            extra={"location": self._location.get_location_name(), "size_bytes": total_size},
        )
        return _drive_item(response)

    async def open_session(self, file_name: str, total_size: int, access_token: str) -> UploadSession:
        """Open a resumable upload session that renames on name collision."""
        response = await self._send(
            "POST",
            self._location.session_url(file_name),
            headers={"Authorization": f"Bearer {access_token}"},
            json={"item": {"@microsoft.graph.conflictBehavior": CONFLICT_BEHAVIOR}},
        )
        if not response.is_success:
            logger.error(
                "Session creation failed",
                extra={"status_code": response.status_code, "body": response.text[:500]},
            )
            raise UploadError("Failed to create upload session", status_code=response.status_code)

        try:
            upload_url = response.json().get("uploadUrl")
        except (ValueError, AttributeError) as e:
            raise UploadError("Invalid upload session response", status_code=response.status_code) from e
        if not upload_url:
            raise UploadError("Upload session response has no uploadUrl", status_code=response.status_code)
        return UploadSession(upload_url=upload_url, total_size=total_size)

    async def upload_chunks(
        self,
        session: UploadSession,
        source: ByteSource,
        progress: Optional[ProgressSink] = None,
    ) -> RemoteObjectDescriptor:
        """Stream the remaining bytes of *session* one chunk at a time."""
        result = None
        while not session.complete:
            start, end = session.next_range(self.chunk_size)
            chunk = read_window(source, start, end)

            # The upload URL is pre-authorized; no bearer token here
            response = await self._send(
                "PUT",
                session.upload_url,
                headers={
                    "Content-Length": str(len(chunk)),
                    "Content-Range": f"bytes {start}-{end - 1}/{session.total_size}",
                },
                content=chunk,
            )
            if not response.is_success:
                logger.error(
                    "Chunk upload failed",
                    extra={
                        "status_code": response.status_code,
                        "range_start": start,
                        "range_end": end - 1,
                        "body": response.text[:500],
                    },
                )
                raise UploadError("Failed to upload file chunk", status_code=response.status_code)

            session.bytes_acknowledged = end
            if progress:
                progress(session.bytes_acknowledged, session.total_size)

            if session.complete:
                result = response

        if result is None:
            raise UploadError("Upload session finished without a drive item")

        logger.info(
            "Uploaded file in chunks",
            extra={
                "location": self._location.get_location_name(),
                "size_bytes": session.total_size,
                "chunk_size": self.chunk_size,
            },
        )
        return _drive_item(result)

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Storage request failed", extra={"method": method, "error": str(e)})
            raise UploadError(f"Storage request failed: {e}") from e
