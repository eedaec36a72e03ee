"""Client-side gallery listing with in-session memoization."""

import logging
from typing import Optional

from mediarelay.client.relay_client import RelayClient
from mediarelay.client.session import ClientSession
from mediarelay.models.gallery import MediaItem

logger = logging.getLogger(__name__)


class GalleryBrowser:
    """Fetches the gallery once per session until explicitly refreshed."""

    def __init__(self, relay: RelayClient, session: ClientSession):
        self._relay = relay
        self._session = session
        self._items: Optional[list[MediaItem]] = None

    async def items(self, refresh: bool = False) -> list[MediaItem]:
        if self._items is None or refresh:
            response = await self._relay.list_gallery(self._session.require_secret())
            self._items = response.items
            logger.info("Gallery loaded", extra={"count": response.count})
        return self._items

    async def refresh(self) -> list[MediaItem]:
        return await self.items(refresh=True)

    def invalidate(self) -> None:
        self._items = None
