"""Gallery data models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MediaItem(BaseModel):
    """Read-only view of an image or video in the shared folder."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    size: int = 0
    mime_type: str = Field(alias="mimeType")
    is_video: bool = Field(alias="isVideo")
    created_at: datetime = Field(alias="createdDateTime")
    thumbnail_url: Optional[str] = Field(default=None, alias="thumbnailUrl")
    download_url: Optional[str] = Field(default=None, alias="downloadUrl")
    width: Optional[int] = None
    height: Optional[int] = None


class GalleryResponse(BaseModel):
    """Response model for the gallery listing."""

    success: bool = True
    count: int
    items: list[MediaItem]
