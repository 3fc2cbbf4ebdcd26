"""localblob storage data models.

Provides typed dataclasses for blob records, operation options and results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class BlobObject:
    """The externally visible record of a stored blob.

    Attributes:
        url: Public URL; also the primary key in the metadata index.
        download_url: Public URL with the download flag set.
        size: Size of the content in bytes.
        uploaded_at: Upload timestamp (ISO-8601, UTC).
        pathname: Pathname as requested by the caller, without random suffix.
        content_type: MIME type of the content.
        content_disposition: Content-Disposition header value.
        cache_control: Cache-Control header value.
        file_path: On-disk location relative to the content root
            ("<store>/<pathname>", including any random suffix). Internal only.
    """

    url: str
    download_url: str
    size: int
    uploaded_at: str
    pathname: str
    content_type: str
    content_disposition: str
    cache_control: str
    file_path: str

    def to_dict(self) -> dict[str, Any]:
        """Convert the record to a dictionary for JSON serialization."""
        return {
            "url": self.url,
            "download_url": self.download_url,
            "size": self.size,
            "uploaded_at": self.uploaded_at,
            "pathname": self.pathname,
            "content_type": self.content_type,
            "content_disposition": self.content_disposition,
            "cache_control": self.cache_control,
            "file_path": self.file_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlobObject:
        """Create a record from its serialized dictionary.

        Raises:
            KeyError: If url, pathname or file_path is missing.
        """
        size_raw = data.get("size")
        size = int(size_raw) if size_raw is not None else 0

        return cls(
            url=str(data["url"]),
            download_url=str(data.get("download_url") or ""),
            size=size,
            uploaded_at=str(data.get("uploaded_at") or ""),
            pathname=str(data["pathname"]),
            content_type=str(data.get("content_type") or ""),
            content_disposition=str(data.get("content_disposition") or ""),
            cache_control=str(data.get("cache_control") or ""),
            file_path=str(data["file_path"]),
        )


@dataclass(frozen=True)
class PutOptions:
    """Options for storing a new blob.

    cache_control_max_age is kept as the raw string the caller sent; it is
    parsed when the Cache-Control value is derived.
    """

    pathname: str
    add_random_suffix: bool = False
    content_type: str = ""
    cache_control_max_age: str = ""


@dataclass(frozen=True)
class CopyOptions:
    """Options for the destination of a copy."""

    pathname: str
    add_random_suffix: bool = False
    content_type: str = ""
    cache_control_max_age: str = ""

    def to_put_options(self) -> PutOptions:
        return PutOptions(
            pathname=self.pathname,
            add_random_suffix=self.add_random_suffix,
            content_type=self.content_type,
            cache_control_max_age=self.cache_control_max_age,
        )


class DeleteStatus(str, Enum):
    """Per-URL result of a delete request."""

    DELETED = "DELETED"
    NOT_FOUND = "NOT_FOUND"
    FAILED = "FAILED"


@dataclass(frozen=True)
class DeleteOutcome:
    """Outcome of deleting a single URL.

    Attributes:
        url: The URL the caller asked to delete.
        status: What happened to it.
        error: Error message when status is FAILED.
    """

    url: str
    status: DeleteStatus
    error: str | None = None


@dataclass(frozen=True)
class ListResult:
    """Listing of a store, ordered by public URL.

    has_more and cursor are part of the result shape only; listing is not
    paginated so they are always False and None.
    """

    blobs: list[BlobObject] = field(default_factory=list)
    has_more: bool = False
    cursor: str | None = None
