"""Gallery aggregation over the paginated drive children listing."""

import logging
from typing import Any, Optional

import httpx

from mediarelay.core.exceptions import ListError
from mediarelay.models.gallery import MediaItem
from mediarelay.storage.base import DriveLocation
from mediarelay.storage.chunked_upload import TokenProvider

logger = logging.getLogger(__name__)

LIST_SELECT = "id,name,size,file,image,video,createdDateTime,@microsoft.graph.downloadUrl"
PAGE_SIZE = 999
MEDIA_PREFIXES = ("image/", "video/")
THUMBNAIL_PREFERENCE = ("large", "medium", "small")


def first_page_url(location: DriveLocation, page_size: int = PAGE_SIZE) -> str:
    """Build the first listing URL with thumbnails expanded."""
    return (
        f"{location.children_url()}"
        f"?$select={LIST_SELECT}&$expand=thumbnails&$top={page_size}"
    )


def is_media(item: dict[str, Any]) -> bool:
    """True for file items whose MIME type is an image or a video."""
    mime_type = (item.get("file") or {}).get("mimeType") or ""
    return mime_type.startswith(MEDIA_PREFIXES)


def pick_thumbnail(item: dict[str, Any]) -> Optional[str]:
    """Return the largest available thumbnail URL of the first thumbnail set."""
    thumbnails = item.get("thumbnails") or []
    if not thumbnails:
        return None
    thumb_set = thumbnails[0]
    for size in THUMBNAIL_PREFERENCE:
        url = (thumb_set.get(size) or {}).get("url")
        if url:
            return url
    return None


def to_media_item(item: dict[str, Any]) -> MediaItem:
    mime_type = item["file"]["mimeType"]
    image = item.get("image") or {}
    video = item.get("video") or {}
    return MediaItem(
        id=item["id"],
        name=item["name"],
        size=item.get("size", 0),
        mime_type=mime_type,
        is_video=mime_type.startswith("video/"),
        created_at=item["createdDateTime"],
        thumbnail_url=pick_thumbnail(item),
        download_url=item.get("@microsoft.graph.downloadUrl"),
        width=image.get("width") or video.get("width"),
        height=image.get("height") or video.get("height"),
    )


class GalleryAggregator:
    """Walks every page of the folder listing and returns media newest first."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        location: DriveLocation,
        token_provider: TokenProvider,
        page_size: int = PAGE_SIZE,
    ):
        self._client = client
        self._location = location
        self._token_provider = token_provider
        self._page_size = page_size

    async def list_media(self) -> list[MediaItem]:
        """Return every image and video in the folder.

        Raises:
            ListError: If any page fetch fails; no partial results
        """
        access_token = await self._token_provider()
        headers = {"Authorization": f"Bearer {access_token}"}

        raw_items: list[dict[str, Any]] = []
        next_link: Optional[str] = first_page_url(self._location, self._page_size)
        pages = 0

        while next_link:
            logger.debug("Fetching gallery page", extra={"page": pages + 1})
            try:
                response = await self._client.get(next_link, headers=headers)
            except httpx.HTTPError as e:
                logger.error("Gallery page request failed", extra={"page": pages + 1, "error": str(e)})
                raise ListError("Failed to list files") from e

            if not response.is_success:
                logger.error(
                    "List files failed",
                    extra={"page": pages + 1, "status_code": response.status_code, "body": response.text[:500]},
                )
                raise ListError("Failed to list files")

            try:
                data = response.json()
                page_items = data.get("value") or []
                next_link = data.get("@odata.nextLink")
            except (ValueError, AttributeError) as e:
                logger.error("Gallery page is not a listing", extra={"page": pages + 1, "error": str(e)})
                raise ListError("Failed to list files") from e

            pages += 1
            raw_items.extend(page_items)

        try:
            media = [to_media_item(item) for item in raw_items if is_media(item)]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error("Gallery item missing fields", extra={"error": str(e)})
            raise ListError("Failed to list files") from e
        # sorted() is stable; ties keep listing order
        media = sorted(media, key=lambda m: m.created_at, reverse=True)

        logger.info(
            "Gallery listed",
            extra={"pages": pages, "total_items": len(raw_items), "media_items": len(media)},
        )
        return media
