"""Upload data models."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class RemoteObjectDescriptor(BaseModel):
    """Finalized drive item returned by the storage provider."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = None
    name: str
    size: int = 0
    web_url: Optional[str] = Field(default=None, alias="webUrl")


class UploadResponse(BaseModel):
    """Response model for a completed upload or transfer."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    file_name: str = Field(alias="fileName")
    size: int
    web_url: Optional[str] = Field(default=None, alias="webUrl")
    source: Optional[Literal["google-drive", "google-photos"]] = None

    @classmethod
    def from_descriptor(
        cls, descriptor: RemoteObjectDescriptor, source: Optional[str] = None
    ) -> "UploadResponse":
        return cls(
            file_name=descriptor.name,
            size=descriptor.size,
            web_url=descriptor.web_url,
            source=source,
        )


class GoogleDriveUploadRequest(BaseModel):
    """Request model for transferring a Google Drive file."""

    file_id: Optional[str] = Field(default=None, alias="fileId")
    file_name: Optional[str] = Field(default=None, alias="fileName")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    google_access_token: Optional[str] = Field(default=None, alias="googleAccessToken")
    password: Optional[str] = None


class GooglePhotosUploadRequest(BaseModel):
    """Request model for transferring a Google Photos media item."""

    media_item_id: Optional[str] = Field(default=None, alias="mediaItemId")
    file_name: Optional[str] = Field(default=None, alias="fileName")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    base_url: Optional[str] = Field(default=None, alias="baseUrl")
    google_access_token: Optional[str] = Field(default=None, alias="googleAccessToken")


class PhotosSessionRequest(BaseModel):
    """Request model for opening a Google Photos picker session."""

    access_token: Optional[str] = Field(default=None, alias="accessToken")


class ErrorResponse(BaseModel):
    """Uniform error body."""

    error: str
