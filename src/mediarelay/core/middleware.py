"""Request logging middleware for the relay."""

import logging
import time
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Query parameters that carry secrets (site password, Google tokens)
REDACTED_PARAMS = frozenset(["password", "accessToken"])
REDACTED = "***"


def redacted_query(request: Request) -> str:
    """Render the query string with secret values masked."""
    return "&".join(
        f"{key}={REDACTED if key in REDACTED_PARAMS else value}"
        for key, value in request.query_params.multi_items()
    )


def request_bytes(request: Request) -> Optional[int]:
    """Declared body size, or None when the header is absent or malformed."""
    content_length = request.headers.get("content-length", "")
    return int(content_length) if content_length.isdigit() else None


class HTTPErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every failed relay response without leaking credentials.

    - 4xx responses: WARN (wrong password, missing fields)
    - 5xx responses: ERROR (token refresh, storage or transfer failures)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        response = await call_next(request)

        if response.status_code < 400:
            return response

        details = {
            "http_status": response.status_code,
            "method": request.method,
            "path": request.url.path,
            "duration_ms": round((time.time() - start_time) * 1000, 1),
        }
        if request.query_params:
            details["query"] = redacted_query(request)
        size = request_bytes(request)
        if size is not None:
            details["request_bytes"] = size

        if response.status_code >= 500:
            logger.error("Server error response", extra=details)
        else:
            logger.warning("Client error response", extra=details)
        return response
