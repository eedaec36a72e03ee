"""Google Drive and Google Photos imports.

Photos selections go through a picker session: the client creates it via the
relay, opens the picker URI in a window and polls the session until the user
has picked items, the window has stayed closed long enough, or the poll
ceiling is reached.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import httpx

from mediarelay.client.config import ClientConfig
from mediarelay.client.controller import TASK_ERRORS, Notify
from mediarelay.client.relay_client import RelayClient, Sleep
from mediarelay.client.upload_queue import UploadOrigin, UploadQueue, UploadTask
from mediarelay.core.exceptions import PickerTimeoutError, RelayRequestError
from mediarelay.storage.chunked_upload import DEFAULT_CONTENT_TYPE

logger = logging.getLogger(__name__)


class PollOutcome(str, Enum):
    RESOLVED = "resolved"
    ABANDONED = "abandoned"
    TIMED_OUT = "timed_out"
    BLOCKED = "blocked"


# Notice and level for sessions that end without a selection
UNRESOLVED_NOTICES = {
    PollOutcome.ABANDONED: ("Selection cancelled", "info"),
    PollOutcome.TIMED_OUT: ("Photo selection timed out", "warning"),
}


class PickerWindow(ABC):
    """The window showing the picker UI."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        pass

    @abstractmethod
    def close(self) -> None:
        pass


@dataclass
class PickerSession:
    id: str
    picker_uri: str
    media_items_set: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "PickerSession":
        return cls(
            id=payload["id"],
            picker_uri=payload.get("pickerUri", ""),
            media_items_set=bool(payload.get("mediaItemsSet")),
        )


class PickerSessionPoller:
    """Polls one picker session: created -> polling -> resolved | abandoned | timed_out."""

    def __init__(
        self,
        relay: RelayClient,
        access_token: str,
        window: PickerWindow,
        sleep: Sleep = asyncio.sleep,
        poll_interval: float = 1.0,
        initial_delay: float = 2.0,
        closed_window_limit: int = 15,
        max_polls: int = 1800,
    ):
        self._relay = relay
        self._access_token = access_token
        self._window = window
        self._sleep = sleep
        self._poll_interval = poll_interval
        self._initial_delay = initial_delay
        self._closed_window_limit = closed_window_limit
        self._max_polls = max_polls
        self.state = "created"
        self.polls = 0
        self.closed_polls = 0

    async def run(self, session_id: str) -> PollOutcome:
        self.state = "polling"
        # Give the picker window time to load
        await self._sleep(self._initial_delay)

        while self.polls < self._max_polls:
            await self._sleep(self._poll_interval)
            self.polls += 1

            session = await self._poll(session_id)
            if session is not None and session.media_items_set:
                if not self._window.closed:
                    self._window.close()
                return self._finish(PollOutcome.RESOLVED)

            if self._window.closed:
                self.closed_polls += 1
                if self.closed_polls > self._closed_window_limit:
                    return self._finish(PollOutcome.ABANDONED)
            elif session is not None:
                self.closed_polls = 0

        return self._finish(PollOutcome.TIMED_OUT)

    async def wait_for_selection(self, session_id: str) -> None:
        """Poll until resolved.

        Raises:
            PickerTimeoutError: If the session was abandoned or timed out
        """
        outcome = await self.run(session_id)
        if outcome != PollOutcome.RESOLVED:
            raise PickerTimeoutError(UNRESOLVED_NOTICES[outcome][0], outcome=outcome.value)

    async def _poll(self, session_id: str) -> Optional[PickerSession]:
        try:
            payload = await self._relay.get_photos_session(session_id, self._access_token)
        except (RelayRequestError, httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Picker poll failed",
                extra={"session_id": session_id, "poll": self.polls, "error": str(e)},
            )
            return None
        if not isinstance(payload, dict):
            logger.warning(
                "Picker poll returned unexpected body",
                extra={"session_id": session_id, "poll": self.polls, "body_type": type(payload).__name__},
            )
            return None
        return PickerSession.from_payload({"id": session_id, **payload})

    def _finish(self, outcome: PollOutcome) -> PollOutcome:
        self.state = outcome.value
        logger.info(
            "Picker polling stopped",
            extra={"outcome": outcome.value, "polls": self.polls, "closed_polls": self.closed_polls},
        )
        return outcome


class GoogleImporter:
    """Queues picked items and relays them one at a time. Failures are per item."""

    def __init__(self, relay: RelayClient, queue: UploadQueue, notify: Notify):
        self._relay = relay
        self._queue = queue
        self._notify = notify

    async def _transfer(self, task: UploadTask, send: Callable[[], Awaitable[Any]]) -> UploadTask:
        # Started before the first await so a running batch never picks it up
        self._queue.append(task)
        task.start()
        try:
            await send()
        except TASK_ERRORS as e:
            logger.error(
                "Transfer failed",
                extra={"file_name": task.name, "origin": task.origin.value, "error": str(e)},
            )
            task.fail(str(e))
            self._notify(f"Transfer failed: {task.name}", "error")
        except Exception as e:
            logger.exception("Unexpected transfer failure", extra={"file_name": task.name, "origin": task.origin.value})
            task.fail(str(e) or type(e).__name__)
            self._notify(f"Transfer failed: {task.name}", "error")
        else:
            task.succeed()
            self._notify(f"{task.name} uploaded successfully!", "success")
        return task


class DriveImporter(GoogleImporter):
    """Relays files picked in the Google Drive picker."""

    async def import_files(
        self,
        files: list[dict[str, Any]],
        access_token: str,
        password: Optional[str] = None,
    ) -> list[UploadTask]:
        if not files:
            self._notify("No files selected", "warning")
            return []

        self._notify(f"{len(files)} files selected from Google Drive", "success")
        tasks = []
        for doc in files:
            task = UploadTask(
                name=doc.get("name") or f"file_{doc['id']}",
                size=int(doc.get("sizeBytes") or 0),
                mime_type=doc.get("mimeType") or DEFAULT_CONTENT_TYPE,
                origin=UploadOrigin.GOOGLE_DRIVE,
            )
            tasks.append(
                await self._transfer(
                    task,
                    lambda doc=doc: self._relay.upload_from_google_drive(
                        doc["id"], doc.get("name"), doc.get("mimeType"), access_token, password=password
                    ),
                )
            )
        return tasks


class PhotosImporter(GoogleImporter):
    """Runs a Photos picker session end to end and relays the selection."""

    def __init__(
        self,
        relay: RelayClient,
        queue: UploadQueue,
        notify: Notify,
        open_window: Callable[[str], Optional[PickerWindow]],
        config: Optional[ClientConfig] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(relay, queue, notify)
        self._open_window = open_window
        self._config = config or ClientConfig()
        self._sleep = sleep

    async def run(self, access_token: str) -> Optional[PollOutcome]:
        """Create a session, wait for the selection and transfer it.

        Returns None if the session could not be created.
        """
        try:
            session = PickerSession.from_payload(await self._relay.create_photos_session(access_token))
        except (RelayRequestError, httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.error("Photos session creation failed", extra={"error": str(e)})
            self._notify(f"Google Photos error: {e}", "error")
            return None

        window = self._open_window(session.picker_uri)
        if window is None or window.closed:
            self._notify("Popup blocked! Allow popups for this site.", "error")
            return PollOutcome.BLOCKED

        self._notify("Select photos in Google Photos...", "info")
        poller = PickerSessionPoller(
            self._relay,
            access_token,
            window,
            sleep=self._sleep,
            poll_interval=self._config.picker_poll_interval_seconds,
            initial_delay=self._config.picker_initial_delay_seconds,
            closed_window_limit=self._config.picker_closed_window_polls,
            max_polls=self._config.picker_max_polls,
        )
        try:
            await poller.wait_for_selection(session.id)
        except PickerTimeoutError as e:
            outcome = PollOutcome(e.outcome)
            self._notify(*UNRESOLVED_NOTICES[outcome])
            return outcome

        await self.import_selection(session.id, access_token)
        return PollOutcome.RESOLVED

    async def fetch_items(self, session_id: str, access_token: str) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page_token = None
        while True:
            data = await self._relay.list_photos_items(session_id, access_token, page_token=page_token)
            items.extend(data.get("mediaItems") or [])
            page_token = data.get("nextPageToken")
            if not page_token:
                return items

    async def import_selection(self, session_id: str, access_token: str) -> list[UploadTask]:
        try:
            items = await self.fetch_items(session_id, access_token)
        except (RelayRequestError, httpx.HTTPError, ValueError) as e:
            logger.error("Fetching picked items failed", extra={"session_id": session_id, "error": str(e)})
            self._notify("Could not fetch the selected photos", "error")
            return []

        if not items:
            self._notify("No photos selected", "warning")
            return []

        self._notify(f"{len(items)} photos selected from Google Photos", "success")
        tasks = []
        for item in items:
            tasks.append(await self.transfer_item(item, access_token))
        return tasks

    async def transfer_item(self, item: dict[str, Any], access_token: str) -> UploadTask:
        media_file = item.get("mediaFile") or {}
        file_name = media_file.get("filename") or f"photo_{item['id']}.jpg"
        mime_type = media_file.get("mimeType") or "image/jpeg"
        task = UploadTask(
            name=file_name,
            size=0,
            mime_type=mime_type,
            origin=UploadOrigin.GOOGLE_PHOTOS,
        )
        return await self._transfer(
            task,
            lambda: self._relay.upload_from_google_photos(
                item["id"], file_name, mime_type, media_file.get("baseUrl"), access_token
            ),
        )
