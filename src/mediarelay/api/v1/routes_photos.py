"""Google Photos picker proxy routes.

The browser cannot call the picker API directly (CORS), so these routes
forward the caller's Google token and relay the upstream status and body.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from mediarelay.api.dependencies import get_photos_picker_api
from mediarelay.models.upload import PhotosSessionRequest
from mediarelay.services.photos_picker import PhotosPickerApi, PickerReply

router = APIRouter(prefix="/photos-session", tags=["photos"])
logger = logging.getLogger(__name__)

MISSING_TOKEN_MESSAGE = "Missing accessToken"


def _passthrough(reply: PickerReply) -> JSONResponse:
    return JSONResponse(status_code=reply.status_code, content=reply.payload)


def _require_token(access_token: Optional[str]) -> str:
    if not access_token:
        raise HTTPException(status_code=400, detail=MISSING_TOKEN_MESSAGE)
    return access_token


@router.post("")
async def create_photos_session(
    request: PhotosSessionRequest = Body(...),
    picker: PhotosPickerApi = Depends(get_photos_picker_api),
) -> JSONResponse:
    """Open a picker session on behalf of the browser."""
    access_token = _require_token(request.access_token)
    reply = await picker.create_session(access_token)
    logger.info("Picker session created", extra={"status_code": reply.status_code})
    return _passthrough(reply)


@router.get("/{session_id}")
async def get_photos_session(
    session_id: str,
    access_token: Optional[str] = Query(None, alias="accessToken"),
    picker: PhotosPickerApi = Depends(get_photos_picker_api),
) -> JSONResponse:
    """Relay the picker session status."""
    reply = await picker.get_session(session_id, _require_token(access_token))
    return _passthrough(reply)


@router.get("/{session_id}/items")
async def list_photos_session_items(
    session_id: str,
    access_token: Optional[str] = Query(None, alias="accessToken"),
    page_token: Optional[str] = Query(None, alias="pageToken"),
    picker: PhotosPickerApi = Depends(get_photos_picker_api),
) -> JSONResponse:
    """Relay one page of the items the user selected."""
    reply = await picker.list_items(session_id, _require_token(access_token), page_token=page_token)
    return _passthrough(reply)
