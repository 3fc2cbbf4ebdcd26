"""Blob routes for the localblob API.

Provides the authenticated blob endpoints:
- PUT /api/{pathname} (put, or copy when ?fromUrl= is present)
- GET /api/...?url=<public url> (head)
- GET /api/ (list)
- POST /api/delete (delete)

All endpoints are scoped to the store named by the Authorization token.
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from localblob.api.auth import RequireStoreContext
from localblob.storage.headers import resolve_content_type
from localblob.storage.models import BlobObject, CopyOptions, PutOptions
from localblob.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Blobs"])

# Request bodies above this size spill from memory to a temporary file
SPOOL_MAX_MEMORY = 8 * 1024 * 1024


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PutBlobResponse(_CamelModel):
    """Response for put and copy."""

    url: str
    download_url: str
    pathname: str
    content_type: str
    content_disposition: str


class HeadBlobResponse(_CamelModel):
    """Full metadata of a single blob."""

    url: str
    download_url: str
    size: int
    uploaded_at: str
    pathname: str
    content_type: str
    content_disposition: str
    cache_control: str


class ListBlobItem(_CamelModel):
    """A blob in a listing."""

    url: str
    download_url: str
    size: int
    uploaded_at: str
    pathname: str
    content_type: str
    content_disposition: str


class ListBlobsResponse(_CamelModel):
    """Listing of a store. Never paginated: has_more is always False."""

    blobs: list[ListBlobItem]
    has_more: bool = False
    cursor: str | None = None


class DeleteBlobsRequest(BaseModel):
    """Request body for POST /api/delete."""

    urls: list[str]


def get_object_store(request: Request) -> ObjectStore:
    """FastAPI dependency returning the application's ObjectStore."""
    store: ObjectStore = request.app.state.object_store
    return store


ObjectStoreDep = Annotated[ObjectStore, Depends(get_object_store)]


def _to_put_response(record: BlobObject) -> PutBlobResponse:
    return PutBlobResponse(
        url=record.url,
        download_url=record.download_url,
        pathname=record.pathname,
        content_type=record.content_type,
        content_disposition=record.content_disposition,
    )


@router.put("/{pathname:path}", response_model=PutBlobResponse)
async def put_blob(
    pathname: str,
    request: Request,
    store_ctx: RequireStoreContext,
    object_store: ObjectStoreDep,
    from_url: Annotated[str | None, Query(alias="fromUrl")] = None,
    x_add_random_suffix: Annotated[str | None, Header()] = None,
    x_content_type: Annotated[str | None, Header()] = None,
    x_cache_control_max_age: Annotated[str | None, Header()] = None,
    content_type: Annotated[str | None, Header()] = None,
) -> PutBlobResponse:
    """Upload the request body as a new blob, or copy an existing one.

    Headers:
        x-add-random-suffix: "1" to insert a random suffix into the pathname.
        x-content-type: Explicit content type.
        x-cache-control-max-age: Client max-age in seconds.
    """
    add_suffix = x_add_random_suffix == "1"
    resolved_type = resolve_content_type(x_content_type, content_type, pathname)
    max_age = x_cache_control_max_age or ""

    if from_url:
        copy_options = CopyOptions(
            pathname=pathname,
            add_random_suffix=add_suffix,
            content_type=resolved_type,
            cache_control_max_age=max_age,
        )
        record = await asyncio.to_thread(
            object_store.copy, store_ctx.store_id, from_url, copy_options
        )
        return _to_put_response(record)

    put_options = PutOptions(
        pathname=pathname,
        add_random_suffix=add_suffix,
        content_type=resolved_type,
        cache_control_max_age=max_age,
    )

    with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY) as body:
        async for chunk in request.stream():
            await asyncio.to_thread(body.write, chunk)
        body.seek(0)

        record = await asyncio.to_thread(object_store.put, store_ctx.store_id, body, put_options)

    return _to_put_response(record)


@router.post("/delete")
async def delete_blobs(
    payload: DeleteBlobsRequest,
    store_ctx: RequireStoreContext,
    object_store: ObjectStoreDep,
) -> dict[str, str]:
    """Delete blobs by URL. Best-effort; only acknowledges the request."""
    outcomes = await asyncio.to_thread(object_store.delete, payload.urls)

    for outcome in outcomes:
        logger.debug(
            "Delete outcome: store=%s url=%s status=%s",
            store_ctx.store_id,
            outcome.url,
            outcome.status.value,
        )

    return {}


@router.get("/{rest:path}", response_model=ListBlobsResponse | HeadBlobResponse)
async def head_or_list_blobs(
    rest: str,
    store_ctx: RequireStoreContext,
    object_store: ObjectStoreDep,
    url: Annotated[str | None, Query()] = None,
) -> ListBlobsResponse | HeadBlobResponse:
    """Return a single blob's metadata when ?url= is set, else list the store."""
    if url:
        record = await asyncio.to_thread(object_store.get, url)
        return HeadBlobResponse(
            url=record.url,
            download_url=record.download_url,
            size=record.size,
            uploaded_at=record.uploaded_at,
            pathname=record.pathname,
            content_type=record.content_type,
            content_disposition=record.content_disposition,
            cache_control=record.cache_control,
        )

    result = await asyncio.to_thread(object_store.list, store_ctx.store_id)
    return ListBlobsResponse(
        blobs=[
            ListBlobItem(
                url=o.url,
                download_url=o.download_url,
                size=o.size,
                uploaded_at=o.uploaded_at,
                pathname=o.pathname,
                content_type=o.content_type,
                content_disposition=o.content_disposition,
            )
            for o in result.blobs
        ],
        has_more=result.has_more,
        cursor=result.cursor,
    )
