"""Tests for structured logging."""

import json
import logging
import sys

from mediarelay.core.logging import RelayLogFormatter, file_name_context


def make_record(msg="Uploaded small file", exc_info=None, **extra):
    record = logging.LogRecord(
        name="mediarelay.storage.chunked_upload",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formats_single_line_json_with_extra_fields():
    output = RelayLogFormatter().format(make_record(size_bytes=2048, location="CMP GVNG"))

    assert "\n" not in output
    entry = json.loads(output)
    assert entry["severity"] == "INFO"
    assert entry["message"] == "Uploaded small file"
    assert entry["logger"] == "mediarelay.storage.chunked_upload"
    assert entry["size_bytes"] == 2048
    assert entry["location"] == "CMP GVNG"
    assert "lineno" not in entry


def test_includes_current_file_name():
    token = file_name_context.set("holiday.jpg")
    try:
        entry = json.loads(RelayLogFormatter().format(make_record()))
    finally:
        file_name_context.reset(token)

    assert entry["file_name"] == "holiday.jpg"


def test_masks_credential_fields():
    record = make_record(password="letmein", googleAccessToken="ya29.abc", status_code=401)

    entry = json.loads(RelayLogFormatter().format(record))

    assert entry["password"] == "***"
    assert entry["googleAccessToken"] == "***"
    assert entry["status_code"] == 401


def test_includes_exception_details():
    try:
        raise ValueError("bad chunk")
    except ValueError:
        record = make_record(msg="Chunk upload failed", exc_info=sys.exc_info())

    entry = json.loads(RelayLogFormatter().format(record))

    assert entry["exception_type"] == "ValueError"
    assert entry["exception_message"] == "bad chunk"
    assert "Traceback" in entry["exception"]
