"""localblob filesystem content backend.

Stores raw bytes under a content root with:
- Store isolation via physical directory namespacing
- Path traversal protection
- Streaming writes (no buffering of whole payloads)

Layout:
    {base_dir}/{store}/{pathname}

Environment Variables:
    LOCALBLOB_CONTENT_DIR: Content root directory
        (default: tempfile.gettempdir() / blob_fs / content)
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import BinaryIO

from localblob.storage.content_store import ContentStore
from localblob.storage.errors import (
    InvalidObjectInputError,
    ObjectNotFoundError,
    PathTraversalError,
    StorageBackendError,
)

logger = logging.getLogger(__name__)

LOCALBLOB_CONTENT_DIR_ENV = "LOCALBLOB_CONTENT_DIR"

CHUNK_SIZE = 64 * 1024
DIR_PERMISSIONS = 0o755

_STORE_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def _validate_store_id(store: str) -> None:
    """Reject store ids that are not a single safe path segment."""
    if not store or store in (".", "..") or not _STORE_ID_PATTERN.match(store):
        raise InvalidObjectInputError(
            message=f"Invalid store id: {store!r}",
            store=store,
        )


def _is_path_traversal(pathname: str) -> bool:
    """Check if a pathname contains path traversal sequences.

    Detects:
    - NUL bytes
    - Backslashes (Windows path separators)
    - Absolute paths (starting with / or ~, or a drive letter like C:)
    - ".." segments
    """
    if "\x00" in pathname or "\\" in pathname:
        return True

    if pathname.startswith("/") or pathname.startswith("~"):
        return True

    if len(pathname) >= 2 and pathname[1] == ":":
        return True

    return any(segment == ".." for segment in pathname.split("/"))


def _validate_pathname(pathname: str, store: str | None = None) -> None:
    """Validate a relative pathname and raise if unusable."""
    if not pathname or pathname.endswith("/"):
        raise InvalidObjectInputError(
            message="Invalid pathname: must name a file",
            store=store,
            key=pathname,
        )
    if _is_path_traversal(pathname):
        raise PathTraversalError(
            message="Invalid pathname: path traversal or unsafe characters detected",
            store=store,
            key=pathname,
        )
    if any(segment in ("", ".") for segment in pathname.split("/")):
        raise InvalidObjectInputError(
            message='Invalid pathname: empty or "." segment',
            store=store,
            key=pathname,
        )


class FilesystemContentStore(ContentStore):
    """Filesystem-based content storage.

    File paths handed back to callers are relative to the content root and
    use "/" separators regardless of platform.
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        """Initialize filesystem storage.

        Args:
            base_dir: Content root. If None, uses LOCALBLOB_CONTENT_DIR or the
                OS temp directory.

        Raises:
            StorageBackendError: If the content root cannot be created.
        """
        if base_dir is None:
            base_dir = os.environ.get(LOCALBLOB_CONTENT_DIR_ENV)

        if base_dir is None:
            base_dir = Path(tempfile.gettempdir()) / "blob_fs" / "content"
        else:
            base_dir = Path(base_dir)

        try:
            base_dir.mkdir(mode=DIR_PERMISSIONS, parents=True, exist_ok=True)
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to create content directory: {e}",
                cause=e,
            ) from e

        self._base_dir = base_dir.resolve()
        logger.debug("FilesystemContentStore initialized with base_dir=%s", self._base_dir)

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "filesystem"

    @property
    def base_dir(self) -> Path:
        """Return the content root path."""
        return self._base_dir

    def _resolve(self, file_path: str, store: str | None = None) -> Path:
        """Map a relative path to an absolute one inside the content root."""
        _validate_pathname(file_path, store)

        resolved = (self._base_dir / file_path).resolve()
        try:
            resolved.relative_to(self._base_dir)
        except ValueError as e:
            raise PathTraversalError(
                message="Path resolves outside content directory",
                store=store,
                key=file_path,
            ) from e
        return resolved

    def put(self, store: str, pathname: str, data: BinaryIO) -> tuple[int, str]:
        """Stream data into {base_dir}/{store}/{pathname}."""
        _validate_store_id(store)
        _validate_pathname(pathname, store)

        rel_path = f"{store}/{pathname}"
        target = self._resolve(rel_path, store)
        if target == self._base_dir / store or not target.is_relative_to(self._base_dir / store):
            raise InvalidObjectInputError(
                message="Invalid pathname: must name a file inside the store",
                store=store,
                key=pathname,
            )

        try:
            target.parent.mkdir(mode=DIR_PERMISSIONS, parents=True, exist_ok=True)
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to create content directory: {e}",
                store=store,
                key=pathname,
                cause=e,
            ) from e

        size = 0
        try:
            with open(target, "wb") as out:
                while True:
                    chunk = data.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    out.write(chunk)
                    size += len(chunk)
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to write content: {e}",
                store=store,
                key=pathname,
                cause=e,
            ) from e

        logger.debug("Wrote content: store=%s path=%s size=%d", store, rel_path, size)
        return size, rel_path

    def get(self, file_path: str) -> BinaryIO:
        """Open the content at file_path for reading."""
        target = self._resolve(file_path)

        try:
            return open(target, "rb")
        except (FileNotFoundError, IsADirectoryError) as e:
            raise ObjectNotFoundError(
                message="Content not found",
                key=file_path,
            ) from e
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to open content: {e}",
                key=file_path,
                cause=e,
            ) from e

    def delete(self, file_path: str) -> None:
        """Remove the content at file_path."""
        target = self._resolve(file_path)

        try:
            target.unlink()
        except FileNotFoundError as e:
            raise ObjectNotFoundError(
                message="Content not found",
                key=file_path,
            ) from e
        except OSError as e:
            raise StorageBackendError(
                message=f"Failed to delete content: {e}",
                key=file_path,
                cause=e,
            ) from e

        logger.debug("Deleted content: path=%s", file_path)
