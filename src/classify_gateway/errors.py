"""Gateway error taxonomy.

Every request-time failure is a ``GatewayError`` carrying the HTTP status
it maps to and, when known, the provider it concerns.  The handlers in
``register_exception_handlers`` turn them into the
``{"success": false, "error": ...}`` envelope.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised at startup when provider configuration is unusable."""


class GatewayError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, provider: str | None = None) -> None:
        self.message = message or self.default_message
        self.provider = provider
        super().__init__(self.message)


# ── client-input faults ──
class MissingFile(GatewayError):
    status_code = 400
    default_message = "No image file provided"


class UnknownProvider(GatewayError):
    status_code = 400
    default_message = "Invalid endpoint selected"


class InvalidImage(GatewayError):
    status_code = 400
    default_message = "Uploaded file is not a supported image"


class UploadTooLarge(GatewayError):
    status_code = 413
    default_message = "Uploaded file is too large"


# ── upstream / internal faults ──
class ProviderError(GatewayError):
    status_code = 500
    default_message = "Classification provider request failed"


class InvalidUpstreamResponse(GatewayError):
    status_code = 500
    default_message = "Invalid response format from classification provider"


class InternalError(GatewayError):
    status_code = 500


class ClientDisconnected(GatewayError):
    status_code = 499
    default_message = "Client disconnected before classification finished"


def error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


async def gateway_error_handler(_request: Request, exc: GatewayError) -> JSONResponse:
    provider = exc.provider or "-"
    if exc.status_code >= 500:
        logger.error("%s [provider=%s]: %s", type(exc).__name__, provider, exc.message)
    else:
        logger.warning("%s [provider=%s]: %s", type(exc).__name__, provider, exc.message)
    return error_response(exc.status_code, exc.message)


async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in errors
    )
    logger.warning("Rejected malformed request: %s", detail)
    return error_response(400, f"Invalid request: {detail}" if detail else "Invalid request")


async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # raised by the framework itself, e.g. unparseable multipart bodies or unknown routes
    logger.warning("HTTP %d: %s", exc.status_code, exc.detail)
    return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: %s", exc)
    return error_response(InternalError.status_code, InternalError.default_message)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the uniform error envelope on *app*."""
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
