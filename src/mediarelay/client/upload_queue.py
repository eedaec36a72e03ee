"""Client-side upload queue."""

import logging
import mimetypes
import os
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Optional

from mediarelay.storage.chunked_upload import DEFAULT_CONTENT_TYPE, ByteSource

logger = logging.getLogger(__name__)


class UploadStatus(str, Enum):
    """Upload status enumeration."""

    PENDING = "pending"  # Queued, not started
    UPLOADING = "uploading"  # Transfer in flight, cannot be removed
    SUCCESS = "success"
    ERROR = "error"


class UploadOrigin(str, Enum):
    """Where the bytes of a task come from."""

    LOCAL = "local"
    GOOGLE_DRIVE = "google-drive"
    GOOGLE_PHOTOS = "google-photos"


class QueueRejection(str, Enum):
    """Reason a file was not admitted to the queue."""

    UNSUPPORTED_TYPE = "unsupported_type"
    TOO_LARGE = "too_large"
    DUPLICATE = "duplicate"


@dataclass
class LocalFile:
    """A file picked by the user, before admission."""

    name: str
    size: int
    mime_type: str
    source: ByteSource

    @classmethod
    def from_path(cls, path: str) -> "LocalFile":
        """Open *path* for reading; the handle stays open until the upload ends."""
        mime_type, _ = mimetypes.guess_type(path)
        return cls(
            name=os.path.basename(path),
            size=os.path.getsize(path),
            mime_type=mime_type or DEFAULT_CONTENT_TYPE,
            source=open(path, "rb"),
        )


@dataclass
class UploadTask:
    """One file moving through the queue."""

    name: str
    size: int
    mime_type: str
    source: Optional[ByteSource] = None
    origin: UploadOrigin = UploadOrigin.LOCAL
    status: UploadStatus = UploadStatus.PENDING
    bytes_transferred: int = 0
    error: Optional[str] = None
    task_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def start(self) -> None:
        if self.status != UploadStatus.PENDING:
            raise ValueError(f"Cannot start task {self.name} in status {self.status.value}")
        self.status = UploadStatus.UPLOADING

    def succeed(self) -> None:
        self._finish(UploadStatus.SUCCESS)
        self.bytes_transferred = max(self.bytes_transferred, self.size)

    def fail(self, error: str) -> None:
        self._finish(UploadStatus.ERROR)
        self.error = error

    def _finish(self, status: UploadStatus) -> None:
        # uploading leaves only to success or error, exactly once
        if self.status != UploadStatus.UPLOADING:
            raise ValueError(f"Cannot finish task {self.name} in status {self.status.value}")
        self.status = status


@dataclass
class AdmissionResult:
    added: list[UploadTask] = field(default_factory=list)
    rejected: list[tuple[str, QueueRejection]] = field(default_factory=list)


def close_source(task: UploadTask) -> None:
    """Close the task's file handle, if it has one."""
    close = getattr(task.source, "close", None)
    if close is not None:
        close()


def matches_type(mime_type: str, patterns: Iterable[str]) -> bool:
    """Match *mime_type* against exact types and ``category/*`` wildcards."""
    for pattern in patterns:
        if pattern.endswith("/*"):
            if mime_type.startswith(pattern[:-1]):
                return True
        elif mime_type == pattern:
            return True
    return False


class UploadQueue:
    """Ordered in-memory queue of upload tasks for one client session."""

    def __init__(self, allowed_types: Iterable[str], max_size_bytes: int):
        self.allowed_types = list(allowed_types)
        self.max_size_bytes = max_size_bytes
        self._tasks: list[UploadTask] = []

    def __len__(self) -> int:
        return len(self._tasks)

    def __getitem__(self, index: int) -> UploadTask:
        return self._tasks[index]

    def __iter__(self) -> Iterator[UploadTask]:
        return iter(list(self._tasks))

    def check(self, name: str, size: int, mime_type: str) -> Optional[QueueRejection]:
        """Return why a file would be rejected, or None if it is admissible."""
        if not matches_type(mime_type or "", self.allowed_types):
            return QueueRejection.UNSUPPORTED_TYPE
        if size > self.max_size_bytes:
            return QueueRejection.TOO_LARGE
        if any(t.name == name and t.size == size for t in self._tasks):
            return QueueRejection.DUPLICATE
        return None

    def add_files(self, files: Iterable[LocalFile]) -> AdmissionResult:
        """Admit each file that passes the type, size and duplicate checks."""
        result = AdmissionResult()
        for local in files:
            rejection = self.check(local.name, local.size, local.mime_type)
            if rejection:
                logger.debug("File rejected", extra={"file_name": local.name, "reason": rejection.value})
                result.rejected.append((local.name, rejection))
                continue
            task = UploadTask(
                name=local.name,
                size=local.size,
                mime_type=local.mime_type,
                source=local.source,
            )
            self._tasks.append(task)
            result.added.append(task)
        return result

    def append(self, task: UploadTask) -> None:
        """Add a task without admission checks (imports from Google)."""
        self._tasks.append(task)

    def get(self, task_id: str) -> Optional[UploadTask]:
        return next((t for t in self._tasks if t.task_id == task_id), None)

    def remove(self, task_id: str) -> bool:
        """Remove a task. Returns False if it is uploading or unknown."""
        task = self.get(task_id)
        if task is None or task.status == UploadStatus.UPLOADING:
            return False
        self._tasks.remove(task)
        close_source(task)
        return True

    def pending(self) -> list[UploadTask]:
        return [t for t in self._tasks if t.status == UploadStatus.PENDING]

    def count(self, status: UploadStatus) -> int:
        return sum(1 for t in self._tasks if t.status == status)
