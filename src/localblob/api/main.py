"""localblob FastAPI application factory.

This module provides the create_app() factory for bootstrapping the API.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from localblob.api.errors import register_exception_handlers
from localblob.api.middleware.request_id import RequestIdMiddleware
from localblob.api.routes.blobs import router as blobs_router
from localblob.api.routes.health import LOCALBLOB_VERSION
from localblob.api.routes.health import router as health_router
from localblob.api.routes.public import router as public_router
from localblob.observability.tracing import configure_tracing, instrument_fastapi
from localblob.settings import Settings, load_settings
from localblob.storage.address import AddressScheme
from localblob.storage.filesystem_store import FilesystemContentStore
from localblob.storage.metadata_index import MetadataIndex, SqliteMetadataIndex
from localblob.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


def build_object_store(settings: Settings) -> tuple[ObjectStore, MetadataIndex]:
    """Open the metadata index and wire an ObjectStore from settings.

    Returns:
        The ObjectStore and the index it uses; the caller closes the index.
    """
    content_store = FilesystemContentStore(base_dir=settings.content_dir)
    metadata_index = SqliteMetadataIndex.open(settings.index_dir, verbose=settings.is_dev)
    object_store = ObjectStore(
        content_store=content_store,
        metadata_index=metadata_index,
        address_scheme=AddressScheme(settings.base_url),
    )
    return object_store, metadata_index


def create_app(
    object_store: ObjectStore | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the localblob FastAPI application.

    This factory:
    - Creates a FastAPI app with localblob metadata
    - Opens the metadata index (unless an ObjectStore is injected) and
      registers its close on shutdown
    - Registers RequestIdMiddleware and the exception handlers
    - Mounts the health, blob and public routers

    Args:
        object_store: Optional pre-built ObjectStore for testing. Its index is
            owned by the caller and is not closed on shutdown.
        settings: Optional settings. If None, loaded from the environment.

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = load_settings()

    app = FastAPI(
        title="localblob",
        description="Local emulator of a cloud blob storage service",
        version=LOCALBLOB_VERSION,
    )

    owned_index: MetadataIndex | None = None
    if object_store is None:
        object_store, owned_index = build_object_store(settings)

    app.state.settings = settings
    app.state.object_store = object_store

    configure_tracing()

    app.add_middleware(RequestIdMiddleware)

    instrument_fastapi(app)

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        """Close the metadata index opened by this app."""
        if owned_index is not None:
            owned_index.close()

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(blobs_router)
    app.include_router(public_router)

    logger.info("localblob serving public URLs under %s", settings.base_url)

    return app
