"""Exception handlers rendering every failure as ``{"error": message}``."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mediarelay.core.exceptions import (
    AccessDenied,
    AuthError,
    ConfigError,
    ListError,
    MediaRelayException,
    RelayError,
    UploadError,
    UpstreamResponseError,
)

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Not found"

# Domain failures and the status each one maps to
STATUS_BY_EXCEPTION: dict[type[MediaRelayException], int] = {
    AccessDenied: status.HTTP_401_UNAUTHORIZED,
    ConfigError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    AuthError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    UploadError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    RelayError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ListError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    UpstreamResponseError: status.HTTP_502_BAD_GATEWAY,
}


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return error_response(exc.status_code, NOT_FOUND_MESSAGE)
    return error_response(exc.status_code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    logger.warning(
        "Request validation failed",
        extra={"path": request.url.path, "errors": str(errors)[:500]},
    )
    return error_response(status.HTTP_400_BAD_REQUEST, message)


async def media_relay_exception_handler(request: Request, exc: MediaRelayException) -> JSONResponse:
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for exc_type, mapped in STATUS_BY_EXCEPTION.items():
        if isinstance(exc, exc_type):
            status_code = mapped
            break

    if status_code >= 500:
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "error_type": type(exc).__name__, "error": str(exc)},
            exc_info=exc.__cause__ is not None,
        )

    if isinstance(exc, UpstreamResponseError):
        return error_response(status_code, str(exc), details=exc.details)
    return error_response(status_code, str(exc))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        extra={"path": request.url.path, "error": str(exc)},
        exc_info=True,
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error handlers to *app*."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(MediaRelayException, media_relay_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
