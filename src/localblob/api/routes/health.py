"""Liveness and root endpoints for the localblob API."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

router = APIRouter(tags=["Health"])

LOCALBLOB_VERSION = "0.1.0"
UPSTREAM_DOCS_URL = "https://vercel.com/docs/storage/vercel-blob"


class HealthResponse(BaseModel):
    status: str
    time: str
    version: str
    backend: str


@router.get("/health", response_model=HealthResponse)
def get_health(request: Request) -> HealthResponse:
    """Report liveness, server time (ISO-8601) and the content backend in use."""
    object_store = request.app.state.object_store
    return HealthResponse(
        status="ok",
        time=datetime.now(UTC).isoformat(),
        version=LOCALBLOB_VERSION,
        backend=object_store.backend_name,
    )


@router.get("/", include_in_schema=False)
def get_root() -> RedirectResponse:
    """Send browsers to the documentation of the emulated service."""
    return RedirectResponse(url=UPSTREAM_DOCS_URL, status_code=302)
