# storefront/core/errors.py
"""
Error taxonomy shared by the storefront API and the edge functions.

Services raise these; each application renders them with
`error_response()` so both entry points produce the same payload:

    {"error": "<message>", "details": "<optional detail>"}
"""

import logging

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class InvalidArgumentError(StorefrontError):
    """Malformed input or a request the business rules cannot satisfy."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidStateError(StorefrontError):
    """The target is in a lifecycle state that forbids the operation."""

    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(StorefrontError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(StorefrontError):
    """A concurrent writer changed the row between our read and our write."""

    status_code = status.HTTP_409_CONFLICT


class InternalError(StorefrontError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(message: str, details: str | None = None) -> dict[str, str]:
    body = {"error": message}
    if details:
        body["details"] = details
    return body


def error_response(exc: StorefrontError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.details),
    )


def _validation_message(exc: RequestValidationError) -> str:
    """
    Build a single human-readable message from pydantic errors.

    - missing fields are reported together
    - otherwise the first validator message is used as-is
    """
    errors = exc.errors()

    missing = [
        str(err["loc"][-1])
        for err in errors
        if err.get("type") == "missing" and len(err.get("loc", ())) > 1
    ]
    if missing:
        return f"Missing required fields: {', '.join(missing)}"

    for err in errors:
        if err.get("type") == "json_invalid":
            return "Invalid JSON body"
        ctx_error = (err.get("ctx") or {}).get("error")
        if isinstance(ctx_error, ValueError):
            return str(ctx_error)

    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:])
    if field:
        return f"Invalid value for {field}: {first.get('msg', 'invalid')}"
    return "Invalid request body"


async def storefront_error_handler(
    request: Request, exc: StorefrontError
) -> JSONResponse:
    """Map StorefrontError subclasses to their HTTP status."""
    return error_response(exc)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation failures as 400 with the shared payload."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(error_body(_validation_message(exc))),
    )


def make_unhandled_error_handler(headers: dict[str, str] | None = None):
    """
    Build the catch-all 500 handler.

    It runs outside any user middleware, so apps that must stamp extra
    headers on every response (the edge functions' CORS) pass them here.
    """

    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error in %s", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("Internal server error", str(exc)),
            headers=headers,
        )

    return unhandled_error_handler
