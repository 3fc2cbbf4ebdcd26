"""localblob content store interface definition.

Provides the ContentStore interface for raw byte persistence, namespaced by
store id and relative pathname.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import BinaryIO


class ContentStore(ABC):
    """Abstract base class for blob content backends.

    Implementations persist raw bytes only; all metadata lives in the
    metadata index. No locking is performed: concurrent writes to the same
    relative path race and the last completed write wins.

    Implementations:
    - FilesystemContentStore: Local filesystem
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier for observability.

        Returns:
            Backend name string (e.g., "filesystem").
        """
        ...

    @abstractmethod
    def put(self, store: str, pathname: str, data: BinaryIO) -> tuple[int, str]:
        """Stream data into a new file for (store, pathname).

        Intermediate directories are created as needed. An existing file at
        the same location is overwritten.

        Args:
            store: Store id used as the top-level namespace.
            pathname: Relative pathname within the store.
            data: Readable binary stream; read until exhausted.

        Returns:
            Tuple of (bytes written, relative path "store/pathname").

        Raises:
            InvalidObjectInputError: If store id or pathname is unusable.
            PathTraversalError: If pathname would escape the content root.
            StorageBackendError: If the write fails. A partial file may remain.
        """
        ...

    @abstractmethod
    def get(self, file_path: str) -> BinaryIO:
        """Open the content at a relative path for reading.

        The caller owns the returned stream and must close it.

        Raises:
            ObjectNotFoundError: If no file exists at file_path.
            PathTraversalError: If file_path would escape the content root.
            StorageBackendError: If the file cannot be opened.
        """
        ...

    @abstractmethod
    def delete(self, file_path: str) -> None:
        """Delete the content at a relative path.

        Raises:
            ObjectNotFoundError: If no file exists at file_path.
            PathTraversalError: If file_path would escape the content root.
            StorageBackendError: If the file cannot be removed.
        """
        ...
