"""localblob API store extraction.

Clients authenticate with the same read-write token shape the hosted
service issues:

    Authorization: Bearer vercel_blob_rw_<storeId>_<secret>

The store id is the fourth "_"-separated part of the token. The secret is
not verified; this server is for local development only.
"""

import logging
from typing import Annotated

from fastapi import Depends, Request
from pydantic import BaseModel

from localblob.api.errors import BlobHttpError
from localblob.observability.tracing import set_span_attributes

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
STORE_ID_PART_INDEX = 3


class StoreContext(BaseModel):
    """Store the request is scoped to."""

    store_id: str


def _extract_store_id(authorization: str) -> str | None:
    """Return the store id embedded in an Authorization header value."""
    token = authorization.replace(BEARER_PREFIX, "").strip()
    parts = token.split("_")

    if len(parts) <= STORE_ID_PART_INDEX:
        return None

    store_id = parts[STORE_ID_PART_INDEX].strip()
    return store_id or None


async def require_store_context(request: Request) -> StoreContext:
    """FastAPI dependency that resolves the store of the request.

    Returns:
        StoreContext for the token's store.

    Raises:
        BlobHttpError: 401 if the header is missing or malformed.
    """
    authorization = request.headers.get("Authorization")
    if not authorization:
        raise BlobHttpError(
            status_code=401,
            code="UNAUTHORIZED",
            message="Authorization header is required",
        )

    store_id = _extract_store_id(authorization)
    if store_id is None:
        raise BlobHttpError(
            status_code=401,
            code="UNAUTHORIZED",
            message="Malformed Authorization header",
        )

    store_ctx = StoreContext(store_id=store_id)
    request.state.store_context = store_ctx

    set_span_attributes(
        {
            "localblob.request_id": getattr(request.state, "request_id", None),
            "localblob.store": store_id,
        }
    )

    return store_ctx


RequireStoreContext = Annotated[StoreContext, Depends(require_store_context)]
