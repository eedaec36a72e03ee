"""Logging configuration for the Media Relay service."""

import contextvars
import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict

# File currently being uploaded, attached to every record emitted meanwhile
file_name_context: contextvars.ContextVar[str | None] = contextvars.ContextVar("file_name", default=None)

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "taskName"}

# Extra keys whose values are credentials
_SECRET_MARKERS = ("password", "token", "secret")
MASK = "***"


def _is_secret(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in _SECRET_MARKERS)


class RelayLogFormatter(logging.Formatter):
    """Single-line JSON records for hosted log collectors.

    Extra fields are copied to the top level; values under keys that look
    like credentials are masked.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        file_name = file_name_context.get()
        if file_name:
            entry["file_name"] = file_name

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS:
                entry[key] = MASK if _is_secret(key) else value

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = "".join(traceback.format_exception(*record.exc_info))
            entry["exception_type"] = record.exc_info[0].__name__
            entry["exception_message"] = str(record.exc_info[1])

        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_logging() -> None:
    """Plain text at DEBUG locally, JSON at LOG_LEVEL everywhere else."""
    from mediarelay.core.config import settings

    if settings.ENV == "local":
        level = logging.DEBUG
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    else:
        level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if not isinstance(level, int):
            level = logging.INFO
        formatter = RelayLogFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers[:] = [handler]

    # uvicorn installs its own handlers; route them through ours
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers[:] = [handler]
        uvicorn_logger.propagate = False

    # httpx logs every request line at INFO, including token endpoint URLs
    logging.getLogger("httpx").setLevel(logging.WARNING)
