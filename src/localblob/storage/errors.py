"""localblob storage error types.

Three failure families are distinguished:
- NotFound: a metadata record or its blob does not exist
- BadInput: a pathname or store id that cannot be used at all
- StorageFailure: the disk or the metadata index failed

Unparsable option values are not errors; callers fall back to defaults.
"""

from __future__ import annotations


class ObjectStorageError(Exception):
    """Base exception for object storage operations.

    Attributes:
        message: Human-readable error message.
        store: Store id associated with the operation (if applicable).
        key: Pathname or URL associated with the operation (if applicable).
    """

    def __init__(
        self,
        message: str,
        *,
        store: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.store = store
        self.key = key

    def __str__(self) -> str:
        parts = [self.message]
        if self.store:
            parts.append(f"store={self.store}")
        if self.key:
            parts.append(f"key={self.key}")
        return " ".join(parts)


class ObjectNotFoundError(ObjectStorageError):
    """Raised when a metadata record or its content blob does not exist."""

    def __init__(
        self,
        message: str = "Object not found",
        *,
        store: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message, store=store, key=key)


class InvalidObjectInputError(ObjectStorageError):
    """Raised for a pathname or store id that cannot be stored at all."""

    def __init__(
        self,
        message: str = "Invalid object input",
        *,
        store: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message, store=store, key=key)


class PathTraversalError(InvalidObjectInputError):
    """Raised when a pathname would escape the content root.

    Covers "../" segments, absolute paths, backslashes and NUL bytes.
    """

    def __init__(
        self,
        message: str = "Invalid pathname: path traversal detected",
        *,
        store: str | None = None,
        key: str | None = None,
    ) -> None:
        super().__init__(message, store=store, key=key)


class StorageBackendError(ObjectStorageError):
    """Raised when the disk or the metadata index cannot complete an operation.

    Attributes:
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        message: str = "Storage backend error",
        *,
        store: str | None = None,
        key: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, store=store, key=key)
        self.cause = cause


class MetadataIndexError(StorageBackendError):
    """Raised by the metadata index on engine failures or use after close."""

    def __init__(
        self,
        message: str = "Metadata index error",
        *,
        key: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, key=key, cause=cause)
