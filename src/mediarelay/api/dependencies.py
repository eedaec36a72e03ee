"""FastAPI dependencies wiring the relay services per request."""

from typing import AsyncIterator

import httpx
from fastapi import Depends

from mediarelay.core.config import settings
from mediarelay.services.access_gate import AccessGate
from mediarelay.services.gallery import GalleryAggregator
from mediarelay.services.photos_picker import PhotosPickerApi
from mediarelay.services.transfer_relay import TransferRelay
from mediarelay.storage.base import SharedFolder
from mediarelay.storage.chunked_upload import ChunkedUploadEngine
from mediarelay.storage.credentials import CredentialBroker


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """One outbound HTTP client per request, closed when the response is sent."""
    async with httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT) as client:
        yield client


def get_access_gate() -> AccessGate:
    return AccessGate(settings.SITE_PASSWORD)


def get_target_folder() -> SharedFolder:
    return SharedFolder(drive_id=settings.ONEDRIVE_DRIVE_ID, item_id=settings.ONEDRIVE_FOLDER_ID)


def get_credential_broker(client: httpx.AsyncClient = Depends(get_http_client)) -> CredentialBroker:
    return CredentialBroker(client, settings)


def get_upload_engine(
    client: httpx.AsyncClient = Depends(get_http_client),
    broker: CredentialBroker = Depends(get_credential_broker),
    folder: SharedFolder = Depends(get_target_folder),
) -> ChunkedUploadEngine:
    return ChunkedUploadEngine(
        client,
        folder,
        broker.get_access_token,
        chunk_size=settings.relay_chunk_size_bytes,
    )


def get_transfer_relay(
    client: httpx.AsyncClient = Depends(get_http_client),
    engine: ChunkedUploadEngine = Depends(get_upload_engine),
) -> TransferRelay:
    return TransferRelay(client, engine, max_bytes=settings.max_upload_bytes)


def get_gallery_aggregator(
    client: httpx.AsyncClient = Depends(get_http_client),
    broker: CredentialBroker = Depends(get_credential_broker),
    folder: SharedFolder = Depends(get_target_folder),
) -> GalleryAggregator:
    return GalleryAggregator(client, folder, broker.get_access_token)


def get_photos_picker_api(client: httpx.AsyncClient = Depends(get_http_client)) -> PhotosPickerApi:
    return PhotosPickerApi(client)
