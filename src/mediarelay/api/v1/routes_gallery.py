"""Gallery API route."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from mediarelay.api.dependencies import get_access_gate, get_gallery_aggregator
from mediarelay.models.gallery import GalleryResponse
from mediarelay.services.access_gate import AccessGate
from mediarelay.services.gallery import GalleryAggregator

router = APIRouter(tags=["gallery"])
logger = logging.getLogger(__name__)


@router.get("/gallery", response_model=GalleryResponse, response_model_by_alias=True)
async def list_gallery(
    password: Optional[str] = Query(None),
    gate: AccessGate = Depends(get_access_gate),
    aggregator: GalleryAggregator = Depends(get_gallery_aggregator),
) -> GalleryResponse:
    """List every image and video in the shared folder, newest first."""
    gate.check(password)

    items = await aggregator.list_media()
    return GalleryResponse(count=len(items), items=items)
