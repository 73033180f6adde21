"""Error taxonomy shared by the broker and the metadata API.

Every error carries a public message that is safe to show to the caller and
an HTTP status. Upstream details are chained with ``raise ... from exc`` and
logged, never rendered.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class BrokerError(Exception):
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(BrokerError):
    """Missing or malformed field, unknown action."""

    default_message = "Bad request"


class Unauthorized(BrokerError):
    """Caller does not own the storage key or record."""

    default_message = "Access denied"


class MissingCredentials(Unauthorized):
    """No bearer token, or one that does not verify."""

    status_code = 401
    default_message = "Unauthorized"


class InvalidOrExpiredLink(BrokerError):
    default_message = "Link is invalid or has expired"


class UpstreamFailure(BrokerError):
    """Object store or database call failed."""

    status_code = 502
    default_message = "Storage service unavailable"


class NotFound(BrokerError):
    status_code = 404
    default_message = "Not found"


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def validation_message(errors: Sequence[Any]) -> str:
    fields = []
    for error in errors:
        if error.get("type") in {"union_tag_invalid", "union_tag_not_found"}:
            return "Missing or unknown 'action'"
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        if loc:
            fields.append(loc[-1])
    if fields:
        return "Missing or invalid field(s): " + ", ".join(dict.fromkeys(fields))
    return "Invalid request body"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BrokerError)
    async def broker_error_handler(request: Request, exc: BrokerError):
        if exc.status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return _error_response(exc.status_code, message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(400, validation_message(exc.errors()))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, "Internal server error")
