"""Tests for the chunked upload engine."""

import io
import json

import httpx
import pytest

from mediarelay.core.exceptions import UploadError
from mediarelay.storage.base import OwnDriveRoot, SharedFolder
from mediarelay.storage.chunked_upload import (
    SMALL_UPLOAD_THRESHOLD,
    ChunkedUploadEngine,
    UploadSession,
    sanitize_file_name,
)

MIB = 1024 * 1024
UPLOAD_URL = "https://upload.example.com/session/abc"
FOLDER = SharedFolder(drive_id="d1", item_id="f1")


async def static_token():
    return "graph-token"


def graph_handler(final_item=None):
    """Accept single PUTs, session creation and chunk PUTs."""
    final_item = final_item or {"id": "item-1", "name": "video.mp4", "size": 0, "webUrl": "https://1drv.ms/x"}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith(":/content"):
            return httpx.Response(201, json={"id": "small-1", "name": "photo.jpg", "size": len(request.content), "webUrl": "https://1drv.ms/p"})
        if request.url.path.endswith(":/createUploadSession"):
            return httpx.Response(200, json={"uploadUrl": UPLOAD_URL})
        if str(request.url) == UPLOAD_URL:
            content_range = request.headers["Content-Range"]
            end, total = content_range.split(" ")[1].split("-")[1].split("/")
            if int(end) + 1 == int(total):
                return httpx.Response(201, json=final_item)
            return httpx.Response(202, json={"nextExpectedRanges": [f"{int(end) + 1}-"]})
        return httpx.Response(404)

    return handler


def make_engine(recording, handler, chunk_size=5 * MIB, location=FOLDER):
    recorder = recording(handler)
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return ChunkedUploadEngine(client, location, static_token, chunk_size=chunk_size), recorder


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('a/b\\c:d*e?f"g<h>i|j.jpg', "a_b_c_d_e_f_g_h_i_j.jpg"),
        ("  holiday   photo\t1.jpg  ", "holiday photo 1.jpg"),
        ("plain.png", "plain.png"),
    ],
)
def test_sanitize_file_name(raw, expected):
    assert sanitize_file_name(raw) == expected


@pytest.mark.parametrize("raw", ['x:/"y"  z ', "  ", "a|||b", "ok.jpg", " \\ / "])
def test_sanitize_is_idempotent(raw):
    once = sanitize_file_name(raw)
    assert sanitize_file_name(once) == once


def test_upload_session_ranges():
    session = UploadSession(upload_url=UPLOAD_URL, total_size=12)

    assert session.next_range(5) == (0, 5)
    session.bytes_acknowledged = 10
    assert session.next_range(5) == (10, 12)
    assert not session.complete
    session.bytes_acknowledged = 12
    assert session.complete


@pytest.mark.asyncio
async def test_small_file_uses_single_put(recording):
    """A 2 MiB image goes up in one request."""
    engine, recorder = make_engine(recording, graph_handler())
    content = b"\x01" * (2 * MIB)
    progress = []

    result = await engine.upload(content, "photo.jpg", len(content), "image/jpeg", progress=lambda a, t: progress.append((a, t)))

    assert len(recorder.requests) == 1
    request = recorder.requests[0]
    assert request.method == "PUT"
    assert request.url.path == "/v1.0/drives/d1/items/f1:/photo.jpg:/content"
    assert request.headers["Authorization"] == "Bearer graph-token"
    assert request.headers["Content-Type"] == "image/jpeg"
    assert result.name == "photo.jpg"
    assert result.web_url == "https://1drv.ms/p"
    assert progress == [(len(content), len(content))]


@pytest.mark.asyncio
async def test_small_upload_defaults_content_type(recording):
    engine, recorder = make_engine(recording, graph_handler())

    await engine.upload(b"abc", "notes", 3)

    assert recorder.requests[0].headers["Content-Type"] == "application/octet-stream"


@pytest.mark.asyncio
async def test_threshold_boundary_opens_session(recording):
    engine, recorder = make_engine(recording, graph_handler())
    content = b"\x00" * SMALL_UPLOAD_THRESHOLD

    await engine.upload(content, "edge.bin", len(content))

    assert recorder.requests[0].url.path.endswith(":/createUploadSession")


@pytest.mark.asyncio
async def test_large_file_chunk_ranges(recording):
    """12 MiB with 5 MiB chunks: one session and three exact ranges."""
    engine, recorder = make_engine(recording, graph_handler())
    total = 12 * MIB
    content = io.BytesIO(b"\x07" * total)
    progress = []

    result = await engine.upload(content, "video.mp4", total, "video/mp4", progress=lambda a, t: progress.append(a))

    session_request, *chunk_requests = recorder.requests
    assert session_request.method == "POST"
    assert session_request.url.path == "/v1.0/drives/d1/items/f1:/video.mp4:/createUploadSession"
    assert json.loads(session_request.content) == {"item": {"@microsoft.graph.conflictBehavior": "rename"}}

    assert [r.headers["Content-Range"] for r in chunk_requests] == [
        "bytes 0-5242879/12582912",
        "bytes 5242880-10485759/12582912",
        "bytes 10485760-12582911/12582912",
    ]
    assert [r.headers["Content-Length"] for r in chunk_requests] == [str(5 * MIB), str(5 * MIB), str(2 * MIB)]
    assert all("Authorization" not in r.headers for r in chunk_requests)
    assert progress == [5 * MIB, 10 * MIB, total]
    assert result.id == "item-1"


@pytest.mark.asyncio
async def test_chunk_ranges_cover_object_exactly(recording):
    engine, recorder = make_engine(recording, graph_handler(), chunk_size=3 * MIB + 7)
    total = 10 * MIB + 3
    await engine.upload(b"\x00" * total, "odd.bin", total)

    covered = 0
    for request in recorder.requests[1:]:
        start, end = request.headers["Content-Range"].split(" ")[1].split("/")[0].split("-")
        assert int(start) == covered
        covered = int(end) + 1
    assert covered == total


@pytest.mark.asyncio
async def test_file_name_is_sanitized_and_quoted(recording):
    engine, recorder = make_engine(recording, graph_handler(), location=OwnDriveRoot())

    await engine.upload(b"abc", "my: holiday?.jpg", 3)

    assert recorder.requests[0].url.raw_path.decode() == "/v1.0/me/drive/root:/my_%20holiday_.jpg:/content"


@pytest.mark.asyncio
async def test_chunk_failure_raises_upload_error(recording):
    def handler(request):
        if request.url.path.endswith(":/createUploadSession"):
            return httpx.Response(200, json={"uploadUrl": UPLOAD_URL})
        return httpx.Response(416, json={"error": {"code": "invalidRange"}})

    engine, recorder = make_engine(recording, handler)

    with pytest.raises(UploadError) as exc_info:
        await engine.upload(b"\x00" * (6 * MIB), "big.bin", 6 * MIB)

    assert exc_info.value.status_code == 416
    # No retry inside the engine
    assert len(recorder.requests) == 2


@pytest.mark.asyncio
async def test_session_creation_failure(recording):
    engine, _ = make_engine(recording, lambda request: httpx.Response(403, json={"error": "denied"}))

    with pytest.raises(UploadError) as exc_info:
        await engine.upload(b"\x00" * (5 * MIB), "big.bin", 5 * MIB)

    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_transport_error_becomes_upload_error(recording):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    engine, _ = make_engine(recording, handler)

    with pytest.raises(UploadError):
        await engine.upload(b"abc", "a.jpg", 3)


@pytest.mark.asyncio
async def test_non_json_single_put_reply_raises_upload_error(recording):
    engine, _ = make_engine(recording, lambda request: httpx.Response(201, text="OK"))

    with pytest.raises(UploadError) as exc_info:
        await engine.upload(b"abc", "a.jpg", 3)

    assert exc_info.value.status_code == 201


@pytest.mark.asyncio
async def test_non_json_session_reply_raises_upload_error(recording):
    engine, _ = make_engine(recording, lambda request: httpx.Response(200, text="<html></html>"))

    with pytest.raises(UploadError):
        await engine.upload(b"\x00" * (5 * MIB), "big.bin", 5 * MIB)


@pytest.mark.asyncio
async def test_final_chunk_without_drive_item_raises_upload_error(recording):
    engine, _ = make_engine(recording, graph_handler(final_item={"unexpected": True}))

    with pytest.raises(UploadError):
        await engine.upload(b"\x00" * (5 * MIB), "big.bin", 5 * MIB)
