"""SQLite-backed metadata index for localblob.

An embedded, durable, ordered key-value store mapping public URLs to
serialized BlobObject records.

Design requirements:
- Keys compare in byte order of their UTF-8 encoding (BINARY collation), so
  prefix scans return records ordered by URL, not by upload time
- Every write is its own transaction and is fsync'd at commit
- Writes are serialized; readers use their own thread-local connections
- An absent key is a None result, never an error; engine failures raise
- Opened once, closed once; unusable after close
"""

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from types import TracebackType

from localblob.storage.errors import MetadataIndexError
from localblob.storage.models import BlobObject

logger = logging.getLogger(__name__)

DEFAULT_INDEX_FILENAME = "metadata.sqlite3"


class MetadataIndex(ABC):
    """Abstract ordered key-value index of object records."""

    @abstractmethod
    def put(self, key: str, record: BlobObject) -> None:
        """Insert or replace the record stored under key."""
        ...

    @abstractmethod
    def get(self, key: str) -> BlobObject | None:
        """Point lookup.

        Returns:
            The record, or None if the key is absent.

        Raises:
            MetadataIndexError: On engine failure or an undecodable record.
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete the record under key. Deleting an absent key is not an error."""
        ...

    @abstractmethod
    def list_by_prefix(self, prefix: str) -> list[BlobObject]:
        """Return all records whose key starts with prefix, in key order."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release all resources. The index is unusable afterwards."""
        ...

    def __enter__(self) -> MetadataIndex:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class SqliteMetadataIndex(MetadataIndex):
    """SQLite implementation of the metadata index.

    The database file lives at {index_dir}/metadata.sqlite3. Uses WAL mode so
    readers do not block the single writer, and synchronous=FULL so every
    commit is fsync'd.
    """

    _CREATE_TABLE_SQL = """
        CREATE TABLE IF NOT EXISTS objects (
            key TEXT NOT NULL PRIMARY KEY COLLATE BINARY,
            record TEXT NOT NULL
        ) WITHOUT ROWID
    """

    _SELECT_SQL = "SELECT record FROM objects WHERE key = ?"

    _UPSERT_SQL = "INSERT OR REPLACE INTO objects (key, record) VALUES (?, ?)"

    _DELETE_SQL = "DELETE FROM objects WHERE key = ?"

    _SCAN_SQL = "SELECT key, record FROM objects WHERE key >= ? ORDER BY key"

    def __init__(self, index_dir: str | Path, *, verbose: bool = False) -> None:
        """Open or create the index.

        Args:
            index_dir: Directory holding the index database.
            verbose: Log every SQL statement at DEBUG. Diagnostics only.

        Raises:
            MetadataIndexError: If the database cannot be initialized.
        """
        self._db_path = Path(index_dir) / DEFAULT_INDEX_FILENAME
        self._verbose = verbose
        self._local = threading.local()
        self._write_lock = threading.Lock()
        self._connections_lock = threading.Lock()
        self._connections: list[sqlite3.Connection] = []
        self._closed = False

        self._ensure_database()

    @classmethod
    def open(cls, index_dir: str | Path, verbose: bool = False) -> SqliteMetadataIndex:
        """Open or create the on-disk index at index_dir."""
        return cls(index_dir, verbose=verbose)

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def closed(self) -> bool:
        return self._closed

    def _trace(self, statement: str) -> None:
        logger.debug("metadata index: %s", statement)

    def _ensure_database(self) -> None:
        """Create the database file and table if they don't exist.

        Raises:
            MetadataIndexError: If database cannot be created.
        """
        try:
            if self._db_path.is_dir():
                raise MetadataIndexError(f"Metadata index path is a directory: {self._db_path}")

            self._db_path.parent.mkdir(parents=True, exist_ok=True)

            conn = sqlite3.connect(self._db_path)
            try:
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute(self._CREATE_TABLE_SQL)
                conn.commit()
            finally:
                conn.close()

            logger.info("Opened metadata index at %s", self._db_path)

        except sqlite3.Error as e:
            raise MetadataIndexError(f"Failed to initialize metadata index: {e}", cause=e) from e
        except OSError as e:
            raise MetadataIndexError(
                f"Failed to create metadata index directory: {e}", cause=e
            ) from e

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the calling thread's connection.

        Raises:
            MetadataIndexError: If the index is closed or cannot be connected.
        """
        if self._closed:
            raise MetadataIndexError("Metadata index is closed")

        conn = getattr(self._local, "conn", None)
        if conn is None:
            try:
                conn = sqlite3.connect(self._db_path, check_same_thread=False)
                conn.execute("PRAGMA synchronous=FULL")
                if self._verbose:
                    conn.set_trace_callback(self._trace)
            except sqlite3.Error as e:
                raise MetadataIndexError(f"Failed to connect to metadata index: {e}", cause=e) from e

            with self._connections_lock:
                self._connections.append(conn)
            self._local.conn = conn

        return conn

    def _decode(self, key: str, raw: str) -> BlobObject:
        try:
            return BlobObject.from_dict(json.loads(raw))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise MetadataIndexError(f"Failed to decode record: {e}", key=key, cause=e) from e

    def put(self, key: str, record: BlobObject) -> None:
        """Serialize record and commit it under key."""
        payload = json.dumps(record.to_dict(), sort_keys=True)

        with self._write_lock:
            conn = self._get_connection()
            try:
                conn.execute(self._UPSERT_SQL, (key, payload))
                conn.commit()
            except sqlite3.Error as e:
                with contextlib.suppress(sqlite3.Error):
                    conn.rollback()
                raise MetadataIndexError(f"Failed to store record: {e}", key=key, cause=e) from e

    def get(self, key: str) -> BlobObject | None:
        """Look up the record stored under key."""
        conn = self._get_connection()
        try:
            row = conn.execute(self._SELECT_SQL, (key,)).fetchone()
        except sqlite3.Error as e:
            raise MetadataIndexError(f"Failed to look up record: {e}", key=key, cause=e) from e

        if row is None:
            return None

        return self._decode(key, row[0])

    def delete(self, key: str) -> None:
        """Delete the record under key, if any."""
        with self._write_lock:
            conn = self._get_connection()
            try:
                conn.execute(self._DELETE_SQL, (key,))
                conn.commit()
            except sqlite3.Error as e:
                with contextlib.suppress(sqlite3.Error):
                    conn.rollback()
                raise MetadataIndexError(f"Failed to delete record: {e}", key=key, cause=e) from e

    def list_by_prefix(self, prefix: str) -> list[BlobObject]:
        """Scan forward from the first key >= prefix while keys match prefix.

        Records that cannot be decoded are skipped with a warning.
        """
        conn = self._get_connection()
        out: list[BlobObject] = []

        try:
            cursor = conn.execute(self._SCAN_SQL, (prefix,))
            for key, raw in cursor:
                if not key.startswith(prefix):
                    break
                try:
                    out.append(self._decode(key, raw))
                except MetadataIndexError as e:
                    logger.warning("Skipping undecodable record %s: %s", key, e.cause)
            cursor.close()
        except sqlite3.Error as e:
            raise MetadataIndexError(f"Failed to scan records: {e}", key=prefix, cause=e) from e

        return out

    def close(self) -> None:
        """Close every connection opened by this index."""
        if self._closed:
            return

        self._closed = True
        with self._connections_lock:
            connections, self._connections = self._connections, []

        for conn in connections:
            with contextlib.suppress(sqlite3.Error):
                conn.close()

        self._local = threading.local()
        logger.info("Closed metadata index at %s", self._db_path)
