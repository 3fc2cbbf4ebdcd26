"""Tests for the filesystem content backend.

Covers streaming writes, relative file paths, path traversal prevention
and error mapping for missing content.
"""

from __future__ import annotations

import io
import os
from pathlib import Path
from typing import Any

import pytest

from localblob.storage.errors import (
    InvalidObjectInputError,
    ObjectNotFoundError,
    PathTraversalError,
)
from localblob.storage.filesystem_store import CHUNK_SIZE, FilesystemContentStore


class TestPut:
    """Tests for streaming writes."""

    def test_put_returns_size_and_relative_path(self, content_store: Any) -> None:
        size, file_path = content_store.put("storeA", "a/b/c.txt", io.BytesIO(b"hello"))

        assert size == 5
        assert file_path == "storeA/a/b/c.txt"
        assert (content_store.base_dir / "storeA" / "a" / "b" / "c.txt").read_bytes() == b"hello"

    def test_put_streams_multiple_chunks(self, content_store: Any) -> None:
        """Payloads larger than one chunk are written completely."""
        data = os.urandom(CHUNK_SIZE * 3 + 17)

        size, file_path = content_store.put("storeA", "big.bin", io.BytesIO(data))

        assert size == len(data)
        with content_store.get(file_path) as fh:
            assert fh.read() == data

    def test_backend_name(self, content_store: Any) -> None:
        assert content_store.backend_name == "filesystem"


class TestPathTraversal:
    """Tests for path traversal prevention."""

    @pytest.mark.parametrize(
        "pathname",
        ["../x", "a/../../x", "..\\x", "/etc/passwd", "~/x", "C:/x", "a\x00b"],
    )
    def test_traversal_rejected_on_put(self, content_store: Any, pathname: str) -> None:
        with pytest.raises(PathTraversalError):
            content_store.put("storeA", pathname, io.BytesIO(b"x"))

    def test_traversal_rejected_on_get(self, content_store: Any) -> None:
        with pytest.raises(PathTraversalError):
            content_store.get("../outside.txt")

    def test_traversal_rejected_on_delete(self, content_store: Any) -> None:
        with pytest.raises(PathTraversalError):
            content_store.delete("storeA/../../outside.txt")

    def test_nothing_written_outside_root(self, temp_data_dir: Path, content_store: Any) -> None:
        with pytest.raises(PathTraversalError):
            content_store.put("storeA", "../../escaped.txt", io.BytesIO(b"x"))

        assert not (temp_data_dir / "escaped.txt").exists()

    def test_path_traversal_error_is_bad_input(self) -> None:
        assert issubclass(PathTraversalError, InvalidObjectInputError)


class TestStoreRootGuard:
    """Tests that a pathname can never take the place of a store directory."""

    @pytest.mark.parametrize("pathname", [".", "a//b.txt", "a/./b.txt", "./a.txt", "a/."])
    def test_empty_or_dot_segment_rejected(self, content_store: Any, pathname: str) -> None:
        with pytest.raises(InvalidObjectInputError):
            content_store.put("storeA", pathname, io.BytesIO(b"x"))

    def test_store_directory_survives_rejected_put(self, content_store: Any) -> None:
        content_store.put("storeA", "keep.txt", io.BytesIO(b"keep"))

        with pytest.raises(InvalidObjectInputError):
            content_store.put("storeA", ".", io.BytesIO(b"x"))

        assert (content_store.base_dir / "storeA").is_dir()
        with content_store.get("storeA/keep.txt") as fh:
            assert fh.read() == b"keep"
        size, _ = content_store.put("storeA", "more.txt", io.BytesIO(b"ok"))
        assert size == 2


class TestMissingContent:
    """Tests for reads and deletes of absent content."""

    def test_get_missing_raises_not_found(self, content_store: Any) -> None:
        with pytest.raises(ObjectNotFoundError):
            content_store.get("storeA/missing.txt")

    def test_get_directory_raises_not_found(self, content_store: Any) -> None:
        content_store.put("storeA", "dir/file.txt", io.BytesIO(b"x"))

        with pytest.raises(ObjectNotFoundError):
            content_store.get("storeA/dir")

    def test_delete_missing_raises_not_found(self, content_store: Any) -> None:
        with pytest.raises(ObjectNotFoundError):
            content_store.delete("storeA/missing.txt")

    def test_delete_removes_file(self, content_store: Any) -> None:
        _, file_path = content_store.put("storeA", "a.txt", io.BytesIO(b"x"))

        content_store.delete(file_path)

        assert not (content_store.base_dir / file_path).exists()


class TestBaseDir:
    """Tests for content root selection."""

    def test_env_var_sets_base_dir(
        self, temp_data_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("LOCALBLOB_CONTENT_DIR", str(temp_data_dir / "from_env"))

        store = FilesystemContentStore()

        assert store.base_dir == (temp_data_dir / "from_env").resolve()
        assert store.base_dir.is_dir()

    def test_explicit_base_dir_wins(
        self, temp_data_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("LOCALBLOB_CONTENT_DIR", str(temp_data_dir / "from_env"))

        store = FilesystemContentStore(base_dir=temp_data_dir / "explicit")

        assert store.base_dir == (temp_data_dir / "explicit").resolve()
