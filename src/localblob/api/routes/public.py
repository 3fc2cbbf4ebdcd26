"""Public download route for the localblob API.

GET /public/{store}/{pathname} serves blob content without authentication,
exactly like the hosted service's public URLs. Adding ?download=1 switches
the Content-Disposition to attachment.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Iterator
from datetime import datetime
from email.utils import format_datetime
from typing import Annotated, BinaryIO

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from localblob.api.routes.blobs import ObjectStoreDep
from localblob.storage.headers import attachment_disposition
from localblob.storage.models import BlobObject

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Public"])

CHUNK_SIZE = 64 * 1024


def _iter_content(fh: BinaryIO) -> Iterator[bytes]:
    try:
        while True:
            chunk = fh.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    finally:
        fh.close()


def _last_modified(record: BlobObject) -> str | None:
    try:
        uploaded_at = datetime.fromisoformat(record.uploaded_at.replace("Z", "+00:00"))
    except ValueError:
        return None
    return format_datetime(uploaded_at, usegmt=True)


@router.get("/public/{rest:path}")
async def download_blob(
    rest: str,
    object_store: ObjectStoreDep,
    download: Annotated[str | None, Query()] = None,
) -> StreamingResponse:
    """Stream a blob's content by its public URL."""
    public_url = object_store.address_scheme.url_for_request_path(f"public/{rest}")

    record = await asyncio.to_thread(object_store.get, public_url)
    fh = await asyncio.to_thread(object_store.open_content, record)

    content_disposition = record.content_disposition or "inline"
    if download == "1":
        content_disposition = attachment_disposition(content_disposition)

    headers = {
        "Content-Disposition": content_disposition,
        "Content-Length": str(os.fstat(fh.fileno()).st_size),
    }
    if record.cache_control:
        headers["Cache-Control"] = record.cache_control
    last_modified = _last_modified(record)
    if last_modified:
        headers["Last-Modified"] = last_modified

    return StreamingResponse(
        _iter_content(fh),
        media_type=record.content_type or "application/octet-stream",
        headers=headers,
    )
