"""Pytest configuration and fixtures for localblob tests.

This module provides common fixtures and configuration for all tests.
"""

from __future__ import annotations

import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

LOCALBLOB_ENV_VARS = [
    "LOCALBLOB_ENV",
    "LOCALBLOB_DATA_DIR",
    "LOCALBLOB_CONTENT_DIR",
    "LOCALBLOB_SCHEME",
    "LOCALBLOB_HOST",
    "LOCALBLOB_PORT",
    "LOCALBLOB_BASE_URL",
]

TEST_BASE_URL = "http://localhost:3001"


@pytest.fixture(autouse=True)
def clean_localblob_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove localblob settings from the environment for every test.

    Tests that need a setting set it explicitly with monkeypatch.
    """
    for key in LOCALBLOB_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def temp_data_dir() -> Iterator[Path]:
    """Create a temporary data directory."""
    with tempfile.TemporaryDirectory(prefix="localblob_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def metadata_index(temp_data_dir: Path) -> Iterator[Any]:
    """Open a SqliteMetadataIndex under the temp data dir."""
    from localblob.storage.metadata_index import SqliteMetadataIndex

    index = SqliteMetadataIndex.open(temp_data_dir / "index")
    yield index
    index.close()


@pytest.fixture
def content_store(temp_data_dir: Path) -> Any:
    """Create a FilesystemContentStore under the temp data dir."""
    from localblob.storage.filesystem_store import FilesystemContentStore

    return FilesystemContentStore(base_dir=temp_data_dir / "content")


@pytest.fixture
def object_store(content_store: Any, metadata_index: Any) -> Any:
    """Create an ObjectStore over the temp content store and index."""
    from localblob.storage.address import AddressScheme
    from localblob.storage.object_store import ObjectStore

    return ObjectStore(
        content_store=content_store,
        metadata_index=metadata_index,
        address_scheme=AddressScheme(TEST_BASE_URL),
    )
