"""Drive folder locations addressable through Microsoft Graph."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from urllib.parse import quote

GRAPH_API_BASE = "https://graph.microsoft.com/v1.0"


class DriveLocation(ABC):
    """Abstract base class for an upload destination folder."""

    @abstractmethod
    def item_base(self) -> str:
        """Return the Graph path of the folder item itself.

        Returns:
            Path relative to the Graph API base, without trailing slash
        """
        pass

    @abstractmethod
    def get_location_name(self) -> str:
        """Return location identifier for logs."""
        pass

    def content_url(self, file_name: str) -> str:
        """URL for a single-shot PUT of *file_name* into this folder."""
        return f"{GRAPH_API_BASE}{self._child_path(file_name)}:/content"

    def session_url(self, file_name: str) -> str:
        """URL for opening a resumable upload session for *file_name*."""
        return f"{GRAPH_API_BASE}{self._child_path(file_name)}:/createUploadSession"

    def children_url(self) -> str:
        """URL listing the direct children of this folder."""
        return f"{GRAPH_API_BASE}{self.item_base()}/children"

    def _child_path(self, file_name: str) -> str:
        return f"{self.item_base()}:/{quote(file_name, safe='')}"


@dataclass(frozen=True)
class SharedFolder(DriveLocation):
    """A folder addressed by drive id and item id (owner or shared drive)."""

    drive_id: str
    item_id: str
    name: str | None = None

    def item_base(self) -> str:
        return f"/drives/{self.drive_id}/items/{self.item_id}"

    def get_location_name(self) -> str:
        return self.name or self.item_id


@dataclass(frozen=True)
class OwnDriveFolder(DriveLocation):
    """A folder in the signed-in user's own drive."""

    item_id: str
    name: str | None = None

    def item_base(self) -> str:
        return f"/me/drive/items/{self.item_id}"

    def get_location_name(self) -> str:
        return self.name or self.item_id


@dataclass(frozen=True)
class OwnDriveRoot(DriveLocation):
    """Root of the signed-in user's own drive."""

    def item_base(self) -> str:
        return "/me/drive/root"

    def get_location_name(self) -> str:
        return "root"
