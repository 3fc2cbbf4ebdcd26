"""localblob object store.

Combines a ContentStore, a MetadataIndex and an AddressScheme into the
put / get / delete / list / copy lifecycle.

Consistency is best-effort:
- A failed metadata write after a successful content write leaves an
  orphaned blob; nothing is cleaned up
- Delete removes the metadata record first, then the blob; a failed blob
  delete leaves an orphaned file
- No operation retries
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import BinaryIO

from localblob.storage.address import AddressScheme, add_random_suffix, normalize_pathname
from localblob.storage.content_store import ContentStore
from localblob.storage.errors import (
    ObjectNotFoundError,
    ObjectStorageError,
    StorageBackendError,
)
from localblob.storage.headers import create_cache_control, create_content_disposition
from localblob.storage.metadata_index import MetadataIndex
from localblob.storage.models import (
    BlobObject,
    CopyOptions,
    DeleteOutcome,
    DeleteStatus,
    ListResult,
    PutOptions,
)
from localblob.storage.tracing import traced_storage_operation

logger = logging.getLogger(__name__)


def _current_timestamp() -> str:
    """Current UTC time as ISO-8601 with second precision (e.g. 2026-01-07T19:00:00Z)."""
    return datetime.now(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


class ObjectStore:
    """Object lifecycle over a content store and a metadata index.

    The metadata index is owned by the caller: it is opened before the store
    is built and closed by whoever opened it.
    """

    def __init__(
        self,
        content_store: ContentStore,
        metadata_index: MetadataIndex,
        address_scheme: AddressScheme,
    ) -> None:
        self._content = content_store
        self._index = metadata_index
        self._address = address_scheme

    @property
    def backend_name(self) -> str:
        return self._content.backend_name

    @property
    def address_scheme(self) -> AddressScheme:
        return self._address

    @traced_storage_operation("put")
    def put(self, store: str, data: BinaryIO, options: PutOptions) -> BlobObject:
        """Store a new object.

        The pathname is normalized first; the URL, the file path and the
        record all derive from that one name. The URL and file path carry the
        random suffix when requested, the record's pathname does not.

        Args:
            store: Store id.
            data: Readable binary stream with the content.
            options: Pathname and derived-field options.

        Returns:
            The persisted record.

        Raises:
            InvalidObjectInputError: If the store id or pathname is unusable.
            StorageBackendError: If the content or metadata write fails.
        """
        requested = normalize_pathname(options.pathname)
        pathname = requested
        if options.add_random_suffix:
            pathname = add_random_suffix(requested)

        size, file_path = self._content.put(store, pathname, data)

        url = self._address.public_url(store, pathname)
        record = BlobObject(
            url=url,
            download_url=self._address.download_url(store, pathname),
            size=size,
            uploaded_at=_current_timestamp(),
            pathname=requested,
            content_type=options.content_type,
            content_disposition=create_content_disposition(requested),
            cache_control=create_cache_control(options.cache_control_max_age),
            file_path=file_path,
        )

        try:
            self._index.put(url, record)
        except StorageBackendError:
            logger.warning("Metadata write failed, content left at %s", file_path)
            raise

        logger.debug("Stored object: store=%s url=%s size=%d", store, url, size)
        return record

    @traced_storage_operation("get")
    def get(self, url: str) -> BlobObject:
        """Look up an object by its exact public URL.

        Raises:
            ObjectNotFoundError: If no record exists for url.
            MetadataIndexError: If the index fails.
        """
        record = self._index.get(url)
        if record is None:
            raise ObjectNotFoundError(message="Blob not found", key=url)
        return record

    def open_content(self, record: BlobObject) -> BinaryIO:
        """Open the content blob of a record for reading.

        Raises:
            ObjectNotFoundError: If the blob is missing.
            StorageBackendError: If the blob cannot be opened.
        """
        return self._content.get(record.file_path)

    @traced_storage_operation("delete")
    def delete(self, urls: list[str]) -> list[DeleteOutcome]:
        """Delete objects by URL, best-effort.

        A failure on one URL never stops processing of the others. The
        returned outcomes are in the same order as urls.
        """
        outcomes: list[DeleteOutcome] = []
        for url in urls:
            outcomes.append(self._delete_one(url))
        return outcomes

    def _delete_one(self, url: str) -> DeleteOutcome:
        try:
            record = self._index.get(url)
            if record is None:
                return DeleteOutcome(url=url, status=DeleteStatus.NOT_FOUND)
            self._index.delete(url)
        except ObjectStorageError as e:
            logger.warning("Delete of %s failed: %s", url, e)
            return DeleteOutcome(url=url, status=DeleteStatus.FAILED, error=str(e))

        try:
            self._content.delete(record.file_path)
        except ObjectNotFoundError:
            logger.warning("Content already missing for %s", url)
        except ObjectStorageError as e:
            logger.warning("Metadata removed but content delete failed for %s: %s", url, e)
            return DeleteOutcome(url=url, status=DeleteStatus.FAILED, error=str(e))

        logger.debug("Deleted object: url=%s", url)
        return DeleteOutcome(url=url, status=DeleteStatus.DELETED)

    @traced_storage_operation("list")
    def list(self, store: str) -> ListResult:
        """List every object of a store in lexicographic URL order.

        Raises:
            MetadataIndexError: If the index scan fails.
        """
        blobs = self._index.list_by_prefix(self._address.store_prefix(store))
        return ListResult(blobs=blobs)

    @traced_storage_operation("copy")
    def copy(self, store: str, from_url: str, options: CopyOptions) -> BlobObject:
        """Copy an existing object into a brand-new object.

        The content is re-read and re-written in full; source and destination
        share neither bytes nor metadata.

        Raises:
            ObjectNotFoundError: If the source record or its blob is missing.
            InvalidObjectInputError: If the destination is unusable.
            StorageBackendError: If reading or writing fails.
        """
        source = self._index.get(from_url)
        if source is None:
            raise ObjectNotFoundError(message="From blob doesn't exist", key=from_url)

        with self._content.get(source.file_path) as data:
            return self.put(store, data, options.to_put_options())
