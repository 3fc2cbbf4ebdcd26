"""Error envelope shared by every localblob error response.

    {"code": "NOT_FOUND", "message": "Blob not found", "details": null,
     "request_id": "..."}

The request id is always present, even for errors raised before the
request id middleware ran.
"""

from __future__ import annotations

import uuid
from http import HTTPStatus
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from localblob.api.middleware.request_id import REQUEST_ID_HEADER

# Codes that differ from the upper-cased HTTP reason phrase
_CODE_OVERRIDES: dict[int, str] = {
    500: "INTERNAL_ERROR",
}


def error_code_for_status(status_code: int) -> str:
    """Machine-readable code for an HTTP status, e.g. 404 -> "NOT_FOUND"."""
    if status_code in _CODE_OVERRIDES:
        return _CODE_OVERRIDES[status_code]
    try:
        phrase = HTTPStatus(status_code).phrase
    except ValueError:
        return "ERROR"
    return phrase.upper().replace(" ", "_").replace("-", "_")


def request_id_for(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return str(uuid.uuid4())


def make_error_response(
    request: Request,
    *,
    code: str,
    message: str,
    http_status: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build the JSON error response and echo its request id in the headers."""
    request_id = request_id_for(request)

    return JSONResponse(
        status_code=http_status,
        content={
            "code": code,
            "message": message,
            "details": details,
            "request_id": request_id,
        },
        headers={REQUEST_ID_HEADER: request_id},
    )
