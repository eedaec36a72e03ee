"""Upload API routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, UploadFile

from mediarelay.api.dependencies import get_access_gate, get_transfer_relay, get_upload_engine
from mediarelay.core.config import settings
from mediarelay.models.upload import (
    GoogleDriveUploadRequest,
    GooglePhotosUploadRequest,
    UploadResponse,
)
from mediarelay.services.access_gate import AccessGate
from mediarelay.services.transfer_relay import GoogleDriveSource, GooglePhotosSource, TransferRelay
from mediarelay.storage.chunked_upload import ChunkedUploadEngine

router = APIRouter(tags=["upload"])
logger = logging.getLogger(__name__)


def _too_large() -> HTTPException:
    return HTTPException(
        status_code=400,
        detail=f"File too large. Max size: {settings.MAX_FILE_SIZE_MB}MB",
    )


@router.post("/upload", response_model=UploadResponse, response_model_by_alias=True, response_model_exclude_none=True)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    password: Optional[str] = Form(None),
    gate: AccessGate = Depends(get_access_gate),
    engine: ChunkedUploadEngine = Depends(get_upload_engine),
) -> UploadResponse:
    """Upload a file sent directly by a user into the shared folder."""
    # Password first: nothing touches the provider on a wrong secret
    gate.check(password)

    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")

    file.file.seek(0, 2)
    size_bytes = file.file.tell()
    file.file.seek(0)

    if size_bytes > settings.max_upload_bytes:
        raise _too_large()

    descriptor = await engine.upload(
        file.file,
        file.filename,
        size_bytes,
        content_type=file.content_type,
    )

    logger.info(
        "Upload completed",
        extra={"file_name": descriptor.name, "size_bytes": size_bytes},
    )
    return UploadResponse.from_descriptor(descriptor)


@router.post(
    "/upload-from-google",
    response_model=UploadResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def upload_from_google_drive(
    request: GoogleDriveUploadRequest = Body(...),
    gate: AccessGate = Depends(get_access_gate),
    relay: TransferRelay = Depends(get_transfer_relay),
) -> UploadResponse:
    """Copy a Google Drive file into the shared folder."""
    # Only checked when the caller sends one
    gate.check_if_present(request.password)

    if not request.file_id or not request.google_access_token:
        raise HTTPException(status_code=400, detail="Missing fileId or googleAccessToken")

    logger.info("Transferring from Google Drive", extra={"file_id": request.file_id})
    source = GoogleDriveSource(file_id=request.file_id)
    descriptor = await relay.relay(
        source,
        request.google_access_token,
        name_hint=request.file_name,
        mime_type=request.mime_type,
    )
    return UploadResponse.from_descriptor(descriptor, source=source.source_name)


@router.post(
    "/upload-from-google-photos",
    response_model=UploadResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def upload_from_google_photos(
    request: GooglePhotosUploadRequest = Body(...),
    relay: TransferRelay = Depends(get_transfer_relay),
) -> UploadResponse:
    """Copy a Google Photos media item into the shared folder."""
    if not request.base_url or not request.google_access_token:
        raise HTTPException(status_code=400, detail="Missing baseUrl or googleAccessToken")

    logger.info("Transferring from Google Photos", extra={"media_item_id": request.media_item_id})
    source = GooglePhotosSource(base_url=request.base_url, media_item_id=request.media_item_id)
    descriptor = await relay.relay(
        source,
        request.google_access_token,
        name_hint=request.file_name,
        mime_type=request.mime_type,
    )
    return UploadResponse.from_descriptor(descriptor, source=source.source_name)
