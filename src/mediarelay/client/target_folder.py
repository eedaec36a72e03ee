"""Resolution of the destination folder for direct uploads."""

import base64
import logging
from typing import Any, Optional

import httpx

from mediarelay.client.config import ClientConfig
from mediarelay.core.exceptions import FolderResolutionError
from mediarelay.storage.base import GRAPH_API_BASE, DriveLocation, OwnDriveFolder, SharedFolder
from mediarelay.storage.chunked_upload import CONFLICT_BEHAVIOR, TokenProvider

logger = logging.getLogger(__name__)


def encode_sharing_url(url: str) -> str:
    """Encode a sharing link for ``/shares/{id}``: ``u!`` + unpadded URL-safe base64."""
    encoded = base64.urlsafe_b64encode(url.encode("utf-8")).decode("ascii")
    return "u!" + encoded.rstrip("=")


def _odata_quote(value: str) -> str:
    return value.replace("'", "''")


class TargetFolderResolver:
    """Finds the folder direct uploads go to, trying each approach in order.

    1. Configured drive and folder ids (works for the owner)
    2. A folder of the configured name in "shared with me"
    3. The configured share link
    4. Find or create a folder of that name in the user's own drive root

    The first success is cached on the instance.
    """

    def __init__(self, client: httpx.AsyncClient, token_provider: TokenProvider, config: ClientConfig):
        self._client = client
        self._token_provider = token_provider
        self._config = config
        self._resolved: Optional[DriveLocation] = None

    @property
    def resolved(self) -> Optional[DriveLocation]:
        return self._resolved

    def reset(self) -> None:
        self._resolved = None

    async def resolve(self) -> DriveLocation:
        """Return the destination folder.

        Raises:
            FolderResolutionError: If even the fallback folder cannot be created
        """
        if self._resolved is not None:
            return self._resolved

        for approach in (self._from_configured_ids, self._from_shared_with_me, self._from_share_link):
            try:
                location = await approach()
            except (FolderResolutionError, httpx.HTTPError) as e:
                logger.warning(
                    "Folder lookup failed, trying next approach",
                    extra={"approach": approach.__name__, "error": str(e)},
                )
                continue
            if location is not None:
                logger.info(
                    "Destination folder resolved",
                    extra={"approach": approach.__name__, "folder": location.get_location_name()},
                )
                self._resolved = location
                return location

        try:
            self._resolved = await self._find_or_create_own_folder()
        except (httpx.HTTPError, KeyError) as e:
            raise FolderResolutionError(f"Could not create fallback folder: {e}") from e
        return self._resolved

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        access_token = await self._token_provider()
        response = await self._client.request(
            method,
            f"{GRAPH_API_BASE}{path}",
            headers={"Authorization": f"Bearer {access_token}"},
            **kwargs,
        )
        if not response.is_success:
            raise FolderResolutionError(f"{method} {path} returned {response.status_code}")
        try:
            payload = response.json()
        except ValueError as e:
            raise FolderResolutionError(f"{method} {path} returned an invalid body") from e
        if not isinstance(payload, dict):
            raise FolderResolutionError(f"{method} {path} returned an unexpected body")
        return payload

    async def _from_configured_ids(self) -> Optional[DriveLocation]:
        drive_id, folder_id = self._config.drive_id, self._config.folder_id
        if not (drive_id and folder_id):
            return None
        folder = await self._request("GET", f"/drives/{drive_id}/items/{folder_id}")
        return SharedFolder(drive_id=drive_id, item_id=folder_id, name=folder.get("name"))

    async def _from_shared_with_me(self) -> Optional[DriveLocation]:
        wanted = self._config.folder_name.lower()
        data = await self._request("GET", "/me/drive/sharedWithMe")
        for item in data.get("value") or []:
            remote = item.get("remoteItem") or {}
            is_folder = "folder" in item or "folder" in remote
            if item.get("name", "").lower() != wanted or not is_folder:
                continue
            drive_id = (remote.get("parentReference") or {}).get("driveId")
            if drive_id and remote.get("id"):
                return SharedFolder(drive_id=drive_id, item_id=remote["id"], name=item["name"])
            logger.warning("Shared folder has no drive reference", extra={"folder_name": item["name"]})
        logger.info("Folder not found in shared items", extra={"folder_name": self._config.folder_name})
        return None

    async def _from_share_link(self) -> Optional[DriveLocation]:
        if not self._config.share_link:
            return None
        item = await self._request("GET", f"/shares/{encode_sharing_url(self._config.share_link)}/driveItem")
        drive_id = (item.get("parentReference") or {}).get("driveId")
        if not drive_id or not item.get("id"):
            raise FolderResolutionError("Share link item has no drive reference")
        return SharedFolder(drive_id=drive_id, item_id=item["id"], name=item.get("name"))

    async def _find_or_create_own_folder(self) -> DriveLocation:
        folder_name = self._config.folder_name
        existing = await self._request(
            "GET",
            "/me/drive/root/children",
            params={"$filter": f"name eq '{_odata_quote(folder_name)}'"},
        )
        matches = existing.get("value") or []
        if matches:
            folder = matches[0]
            logger.info("Using existing folder in own drive", extra={"folder": folder["name"]})
            return OwnDriveFolder(item_id=folder["id"], name=folder["name"])

        created = await self._request(
            "POST",
            "/me/drive/root/children",
            json={
                "name": folder_name,
                "folder": {},
                "@microsoft.graph.conflictBehavior": CONFLICT_BEHAVIOR,
            },
        )
        logger.info("Created folder in own drive", extra={"folder": created["name"]})
        return OwnDriveFolder(item_id=created["id"], name=created["name"])
