"""Request ID and access log middleware for the localblob API.

Every request gets an X-Request-Id (the client's, when it sends a usable
one) and one access log line at DEBUG once the response is produced.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"

MAX_REQUEST_ID_LENGTH = 128
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]+$")


def _accept_request_id(value: str | None) -> str | None:
    """Return the client-supplied request id if it is safe to echo back."""
    if not value:
        return None
    value = value.strip()
    if not value or len(value) > MAX_REQUEST_ID_LENGTH:
        return None
    if not _REQUEST_ID_PATTERN.match(value):
        return None
    return value


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a request id to request.state and to the response headers."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = _accept_request_id(request.headers.get(REQUEST_ID_HEADER))
        if request_id is None:
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id
        started = time.perf_counter()

        response: Response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        logger.debug(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
            extra={"request_id": request_id},
        )
        return response
