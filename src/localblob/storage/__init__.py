"""localblob object storage.

Emulates a cloud blob store on local disk: content lives on the filesystem,
metadata records live in an embedded ordered index keyed by public URL.

Components:
- FilesystemContentStore: raw bytes under {content_dir}/{store}/{pathname}
- SqliteMetadataIndex: URL -> record, with ordered prefix scans
- AddressScheme: public and download URLs
- ObjectStore: put / get / delete / list / copy

Environment Variables:
    LOCALBLOB_CONTENT_DIR: Content root for the filesystem backend
        (default: OS temp dir / blob_fs / content)
"""

from localblob.storage.address import AddressScheme, add_random_suffix, normalize_pathname
from localblob.storage.content_store import ContentStore
from localblob.storage.errors import (
    InvalidObjectInputError,
    MetadataIndexError,
    ObjectNotFoundError,
    ObjectStorageError,
    PathTraversalError,
    StorageBackendError,
)
from localblob.storage.filesystem_store import FilesystemContentStore
from localblob.storage.metadata_index import MetadataIndex, SqliteMetadataIndex
from localblob.storage.models import (
    BlobObject,
    CopyOptions,
    DeleteOutcome,
    DeleteStatus,
    ListResult,
    PutOptions,
)
from localblob.storage.object_store import ObjectStore

__all__ = [
    "AddressScheme",
    "BlobObject",
    "ContentStore",
    "CopyOptions",
    "DeleteOutcome",
    "DeleteStatus",
    "FilesystemContentStore",
    "InvalidObjectInputError",
    "ListResult",
    "MetadataIndex",
    "MetadataIndexError",
    "ObjectNotFoundError",
    "ObjectStorageError",
    "ObjectStore",
    "PathTraversalError",
    "PutOptions",
    "SqliteMetadataIndex",
    "StorageBackendError",
    "add_random_suffix",
    "normalize_pathname",
]
