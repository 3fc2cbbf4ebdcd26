"""localblob API error handling.

Every failure leaves the API in the envelope built by error_model:
- BlobHttpError: raised by routes and dependencies (e.g. 401 from auth)
- ObjectStorageError: NotFound -> 404, BadInput -> 400, anything else -> 500
- HTTPException: Starlette HTTP exceptions, including routing 404/405
- RequestValidationError: malformed request bodies -> 400 "Wrong body"
- Exception: catch-all, 500 without internals
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from localblob.api.error_model import error_code_for_status, make_error_response, request_id_for
from localblob.observability.tracing import get_current_trace_id
from localblob.storage.errors import (
    InvalidObjectInputError,
    ObjectNotFoundError,
    ObjectStorageError,
)

logger = logging.getLogger(__name__)

STORAGE_FAILURE_MESSAGE = "Something went wrong"
WRONG_BODY_MESSAGE = "Wrong body"


class BlobHttpError(Exception):
    """HTTP error carrying its envelope fields."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


async def blob_http_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, BlobHttpError)

    return make_error_response(
        request,
        code=exc.code,
        message=exc.message,
        http_status=exc.status_code,
        details=exc.details,
    )


async def object_storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Map storage errors onto HTTP statuses.

    NotFound and BadInput messages are safe to return as-is. Backend failures
    are logged and reported with a generic message.
    """
    assert isinstance(exc, ObjectStorageError)

    if isinstance(exc, ObjectNotFoundError):
        return make_error_response(request, code="NOT_FOUND", message=exc.message, http_status=404)

    if isinstance(exc, InvalidObjectInputError):
        return make_error_response(
            request, code="BAD_REQUEST", message=exc.message, http_status=400
        )

    logger.error("Storage failure: %s", exc, extra={"request_id": request_id_for(request)})
    return make_error_response(
        request,
        code="STORAGE_FAILURE",
        message=STORAGE_FAILURE_MESSAGE,
        http_status=500,
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, HTTPException)

    return make_error_response(
        request,
        code=error_code_for_status(exc.status_code),
        message=str(exc.detail) if exc.detail else f"HTTP {exc.status_code}",
        http_status=exc.status_code,
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Report which fields were rejected, without echoing their values."""
    assert isinstance(exc, RequestValidationError)

    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        fields.append(".".join(loc) or "request")

    return make_error_response(
        request,
        code="REQUEST_VALIDATION_FAILED",
        message=WRONG_BODY_MESSAGE,
        http_status=400,
        details={"fields": fields} if fields else None,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all: log with trace correlation and return a bare 500."""
    logger.exception(
        "Unhandled exception: %s",
        type(exc).__name__,
        extra={"request_id": request_id_for(request), "trace_id": get_current_trace_id()},
    )

    return make_error_response(
        request,
        code="INTERNAL_ERROR",
        message="An internal error occurred",
        http_status=500,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install every handler above on app."""
    app.add_exception_handler(BlobHttpError, blob_http_error_handler)
    app.add_exception_handler(ObjectStorageError, object_storage_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
