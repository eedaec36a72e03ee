"""Sequential batch upload of the client queue."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import httpx

from mediarelay.client.relay_client import RelayClient
from mediarelay.client.session import ClientSession
from mediarelay.client.target_folder import TargetFolderResolver
from mediarelay.client.upload_queue import (
    LocalFile,
    QueueRejection,
    UploadQueue,
    UploadStatus,
    UploadTask,
    close_source,
)
from mediarelay.core.exceptions import MediaRelayException
from mediarelay.storage.chunked_upload import DEFAULT_CHUNK_SIZE, ChunkedUploadEngine, ProgressSink, TokenProvider

logger = logging.getLogger(__name__)

# notify(message, level) with level in info | success | warning | error
Notify = Callable[[str, str], None]

TASK_ERRORS = (MediaRelayException, httpx.HTTPError, OSError)

REJECTION_MESSAGES = {
    QueueRejection.UNSUPPORTED_TYPE: "Unsupported file type: {name}",
    QueueRejection.TOO_LARGE: "File too large: {name} (max {max_mb}MB)",
    QueueRejection.DUPLICATE: "File already queued: {name}",
}


class Uploader(ABC):
    """Moves the bytes of one task to the destination."""

    async def prepare(self) -> None:
        """Called once before a batch starts."""
        return None

    @abstractmethod
    async def upload(self, task: UploadTask, progress: ProgressSink) -> None:
        pass


class RelayUploader(Uploader):
    """Sends each file to the relay's ``/upload`` endpoint."""

    def __init__(self, relay: RelayClient, session: ClientSession):
        self._relay = relay
        self._session = session

    async def prepare(self) -> None:
        self._session.require_secret()

    async def upload(self, task: UploadTask, progress: ProgressSink) -> None:
        await self._relay.upload_file(task.source, task.name, task.mime_type, self._session.require_secret())
        # The relay reports nothing until the whole file is stored
        progress(task.size, task.size)


class DirectUploader(Uploader):
    """Uploads straight to Graph with the user's own token."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        token_provider: TokenProvider,
        resolver: TargetFolderResolver,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self._client = client
        self._token_provider = token_provider
        self._resolver = resolver
        self._chunk_size = chunk_size

    async def prepare(self) -> None:
        await self._resolver.resolve()

    async def upload(self, task: UploadTask, progress: ProgressSink) -> None:
        location = await self._resolver.resolve()
        engine = ChunkedUploadEngine(self._client, location, self._token_provider, chunk_size=self._chunk_size)
        await engine.upload(task.source, task.name, task.size, content_type=task.mime_type, progress=progress)


@dataclass
class BatchProgress:
    """Bytes acknowledged across a batch. Never decreases."""

    total_bytes: int
    completed_bytes: int = 0

    def advance(self, completed_bytes: int) -> None:
        self.completed_bytes = max(self.completed_bytes, min(completed_bytes, self.total_bytes))

    @property
    def percent(self) -> float:
        if self.total_bytes <= 0:
            return 100.0
        return self.completed_bytes * 100.0 / self.total_bytes


@dataclass
class BatchSummary:
    success_count: int
    error_count: int


class UploadController:
    """Owns the queue and runs uploads strictly one at a time."""

    def __init__(
        self,
        queue: UploadQueue,
        uploader: Uploader,
        notify: Notify,
        on_progress: Optional[Callable[[BatchProgress], None]] = None,
    ):
        self.queue = queue
        self._uploader = uploader
        self._notify = notify
        self._on_progress = on_progress
        self.in_progress = False
        self.progress: Optional[BatchProgress] = None

    def add_files(self, files: Iterable[LocalFile]) -> list[UploadTask]:
        result = self.queue.add_files(files)
        max_mb = self.queue.max_size_bytes // (1024 * 1024)
        for name, reason in result.rejected:
            self._notify(REJECTION_MESSAGES[reason].format(name=name, max_mb=max_mb), "warning")
        if result.added:
            self._notify(f"{len(result.added)} files added to the queue", "success")
        return result.added

    def remove(self, task_id: str) -> bool:
        task = self.queue.get(task_id)
        if task is not None and task.status == UploadStatus.UPLOADING:
            self._notify("Cannot remove a file while it is uploading", "warning")
            return False
        return self.queue.remove(task_id)

    async def upload_all(self) -> Optional[BatchSummary]:
        """Upload every pending task, including tasks queued mid-batch.

        Per-task failures are recorded on the task and never stop the batch.
        """
        if self.in_progress:
            self._notify("Upload already in progress", "warning")
            return None

        pending = self.queue.pending()
        if not pending:
            self._notify("No files to upload", "warning")
            return None

        try:
            await self._uploader.prepare()
        except TASK_ERRORS as e:
            logger.error("Batch preparation failed", extra={"error": str(e)})
            self._notify(f"Error: {e}", "error")
            return None

        self.in_progress = True
        seen = {t.task_id for t in pending}
        self.progress = BatchProgress(total_bytes=sum(t.size for t in pending))
        self._report()

        try:
            index = 0
            # Walk the live queue so tasks appended mid-batch are picked up
            while index < len(self.queue):
                task = self.queue[index]
                index += 1
                if task.status != UploadStatus.PENDING:
                    continue
                if task.task_id not in seen:
                    seen.add(task.task_id)
                    self.progress.total_bytes += task.size
                await self._upload_one(task)
        finally:
            self.in_progress = False

        summary = BatchSummary(
            success_count=self.queue.count(UploadStatus.SUCCESS),
            error_count=self.queue.count(UploadStatus.ERROR),
        )
        if summary.error_count == 0:
            self._notify(f"{summary.success_count} files uploaded successfully!", "success")
        else:
            self._notify(f"{summary.success_count} uploaded, {summary.error_count} errors", "warning")

        logger.info(
            "Batch finished",
            extra={"success_count": summary.success_count, "error_count": summary.error_count},
        )
        return summary

    async def _upload_one(self, task: UploadTask) -> None:
        base = self.progress.completed_bytes

        def on_chunk(acknowledged: int, total: int) -> None:
            task.bytes_transferred = acknowledged
            self.progress.advance(base + acknowledged)
            self._report()

        task.start()
        try:
            await self._uploader.upload(task, on_chunk)
        except TASK_ERRORS as e:
            logger.error("Upload failed", extra={"file_name": task.name, "error": str(e)})
            task.fail(str(e))
            self._notify(f"Upload failed: {task.name}", "error")
        except Exception as e:
            logger.exception("Unexpected upload failure", extra={"file_name": task.name})
            task.fail(str(e) or type(e).__name__)
            self._notify(f"Upload failed: {task.name}", "error")
        else:
            task.succeed()
            self.progress.advance(base + task.size)
            self._report()
        finally:
            close_source(task)

    def _report(self) -> None:
        if self._on_progress is not None and self.progress is not None:
            self._on_progress(self.progress)
