"""Tests for the localblob ObjectStore lifecycle.

Covers:
- Roundtrip: put then get returns an identical record; content matches
- Random suffix: URL carries the suffix, record pathname does not
- Store isolation: listing never crosses store boundaries
- Delete: best-effort, per-URL outcomes, removed objects disappear
- Copy: destination is independent of the source
- Derived fields: Content-Disposition and Cache-Control
- Pathname normalization: one object, one name
- Concurrent puts: every writer is indexed
"""

from __future__ import annotations

import io
import os
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import pytest

from localblob.storage.errors import (
    InvalidObjectInputError,
    MetadataIndexError,
    ObjectNotFoundError,
    PathTraversalError,
    StorageBackendError,
)
from localblob.storage.models import CopyOptions, DeleteStatus, PutOptions

BASE_URL = "http://localhost:3001"

_ISO_SECONDS = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")


def _put(object_store: Any, store: str, pathname: str, data: bytes, **kwargs: Any) -> Any:
    return object_store.put(store, io.BytesIO(data), PutOptions(pathname=pathname, **kwargs))


def _read(object_store: Any, record: Any) -> bytes:
    with object_store.open_content(record) as fh:
        data: bytes = fh.read()
    return data


class TestRoundtrip:
    """Tests for put/get roundtrip."""

    def test_put_then_get_returns_identical_record(self, object_store: Any) -> None:
        """1024 random bytes come back unchanged with an identical record."""
        data = os.urandom(1024)

        record = _put(object_store, "tenantA", "images/cat.png", data)

        assert record.pathname == "images/cat.png"
        assert record.size == 1024
        assert object_store.get(record.url) == record
        assert _read(object_store, record) == data

    def test_url_shape(self, object_store: Any) -> None:
        """URL and download URL are built from base URL, store and pathname."""
        record = _put(object_store, "tenantA", "docs/readme.txt", b"hi")

        assert record.url == f"{BASE_URL}/public/tenantA/docs/readme.txt"
        assert record.download_url == f"{BASE_URL}/public/tenantA/docs/readme.txt?download=1"

    def test_uploaded_at_is_utc_seconds(self, object_store: Any) -> None:
        """uploaded_at is ISO-8601 UTC with second precision."""
        record = _put(object_store, "tenantA", "a.txt", b"x")

        assert _ISO_SECONDS.match(record.uploaded_at)

    def test_empty_content(self, object_store: Any) -> None:
        """Empty content is stored with size zero."""
        record = _put(object_store, "tenantA", "empty.bin", b"")

        assert record.size == 0
        assert _read(object_store, record) == b""

    def test_put_same_pathname_overwrites(self, object_store: Any) -> None:
        """A second put to the same pathname replaces record and content."""
        _put(object_store, "tenantA", "same.txt", b"first")
        second = _put(object_store, "tenantA", "same.txt", b"second!")

        assert object_store.get(second.url).size == 7
        assert _read(object_store, second) == b"second!"
        assert len(object_store.list("tenantA").blobs) == 1

    def test_get_unknown_url_raises_not_found(self, object_store: Any) -> None:
        """Looking up a URL with no record raises ObjectNotFoundError."""
        with pytest.raises(ObjectNotFoundError) as exc_info:
            object_store.get(f"{BASE_URL}/public/tenantA/missing.txt")

        assert exc_info.value.message == "Blob not found"

    def test_content_type_is_stored_as_given(self, object_store: Any) -> None:
        """The resolved content type is persisted verbatim."""
        record = _put(object_store, "tenantA", "a.bin", b"x", content_type="image/png")

        assert object_store.get(record.url).content_type == "image/png"


class TestRandomSuffix:
    """Tests for random pathname suffixes."""

    def test_suffix_changes_url_but_not_pathname(self, object_store: Any) -> None:
        """The URL carries the suffix; the record pathname is the requested one."""
        record = _put(object_store, "tenantA", "images/cat.png", b"x", add_random_suffix=True)

        assert record.pathname == "images/cat.png"
        assert re.match(
            rf"^{re.escape(BASE_URL)}/public/tenantA/images/cat-[0-9A-Za-z]{{30}}\.png$",
            record.url,
        )
        assert record.download_url == f"{record.url}?download=1"

    def test_suffixed_puts_do_not_collide(self, object_store: Any) -> None:
        """Two suffixed puts of the same pathname produce two objects."""
        first = _put(object_store, "tenantA", "cat.png", b"one", add_random_suffix=True)
        second = _put(object_store, "tenantA", "cat.png", b"two", add_random_suffix=True)

        assert first.url != second.url
        assert first.file_path != second.file_path
        assert _read(object_store, first) == b"one"
        assert _read(object_store, second) == b"two"
        assert len(object_store.list("tenantA").blobs) == 2

    def test_content_disposition_uses_requested_name(self, object_store: Any) -> None:
        """Content-Disposition names the unsuffixed base name."""
        record = _put(object_store, "tenantA", "images/cat.png", b"x", add_random_suffix=True)

        assert record.content_disposition == 'inline; filename="cat.png"'


class TestDerivedFields:
    """Tests for Cache-Control and Content-Disposition derivation."""

    @pytest.mark.parametrize(
        ("max_age", "expected"),
        [
            ("", "public, max-age=31536000, s-maxage=300"),
            ("600", "public, max-age=600, s-maxage=300"),
            ("100", "public, max-age=100, s-maxage=100"),
            ("abc", "public, max-age=31536000, s-maxage=300"),
        ],
    )
    def test_cache_control(self, object_store: Any, max_age: str, expected: str) -> None:
        """Cache-Control caps the shared max-age at five minutes."""
        record = _put(object_store, "tenantA", "a.txt", b"x", cache_control_max_age=max_age)

        assert record.cache_control == expected

    def test_content_disposition_is_inline_base_name(self, object_store: Any) -> None:
        record = _put(object_store, "tenantA", "deep/nested/report.pdf", b"x")

        assert record.content_disposition == 'inline; filename="report.pdf"'


class TestStoreIsolation:
    """Tests for store scoping of listings."""

    def test_list_returns_only_own_store(self, object_store: Any) -> None:
        """Objects of other stores never appear in a listing."""
        _put(object_store, "storeA", "a.txt", b"a")
        _put(object_store, "storeB", "b.txt", b"b")

        result = object_store.list("storeA")

        assert [o.pathname for o in result.blobs] == ["a.txt"]

    def test_store_prefix_does_not_match_longer_store(self, object_store: Any) -> None:
        """Store "a" does not list objects of store "ab"."""
        _put(object_store, "a", "x.txt", b"1")
        _put(object_store, "ab", "y.txt", b"2")

        assert [o.pathname for o in object_store.list("a").blobs] == ["x.txt"]
        assert [o.pathname for o in object_store.list("ab").blobs] == ["y.txt"]

    def test_list_is_in_url_order(self, object_store: Any) -> None:
        """Listing order is lexicographic by URL, not by upload time."""
        for name in ["zeta.txt", "alpha.txt", "Mid.txt", "beta/one.txt"]:
            _put(object_store, "tenantA", name, b"x")

        urls = [o.url for o in object_store.list("tenantA").blobs]

        assert urls == sorted(urls)
        assert len(urls) == 4

    def test_list_of_empty_store(self, object_store: Any) -> None:
        """An unknown store lists as empty, without pagination."""
        result = object_store.list("nobody")

        assert result.blobs == []
        assert result.has_more is False
        assert result.cursor is None

    def test_same_pathname_in_two_stores(self, object_store: Any) -> None:
        """The same pathname in two stores maps to two independent objects."""
        a = _put(object_store, "storeA", "shared.txt", b"from A")
        b = _put(object_store, "storeB", "shared.txt", b"from B")

        assert a.url != b.url
        assert _read(object_store, a) == b"from A"
        assert _read(object_store, b) == b"from B"


class TestDelete:
    """Tests for best-effort delete."""

    def test_deleted_object_disappears(self, object_store: Any) -> None:
        """After delete, get fails and the object is not listed."""
        record = _put(object_store, "tenantA", "gone.txt", b"x")

        outcomes = object_store.delete([record.url])

        assert [o.status for o in outcomes] == [DeleteStatus.DELETED]
        with pytest.raises(ObjectNotFoundError):
            object_store.get(record.url)
        assert object_store.list("tenantA").blobs == []
        with pytest.raises(ObjectNotFoundError):
            object_store.open_content(record)

    def test_unknown_url_is_not_found_and_does_not_stop_others(self, object_store: Any) -> None:
        """A missing URL is reported and the remaining URLs are still deleted."""
        keep = _put(object_store, "tenantA", "keep.txt", b"k")
        drop = _put(object_store, "tenantA", "drop.txt", b"d")
        missing = f"{BASE_URL}/public/tenantA/never.txt"

        outcomes = object_store.delete([missing, drop.url])

        assert [(o.url, o.status) for o in outcomes] == [
            (missing, DeleteStatus.NOT_FOUND),
            (drop.url, DeleteStatus.DELETED),
        ]
        assert object_store.get(keep.url) == keep

    def test_empty_url_list(self, object_store: Any) -> None:
        assert object_store.delete([]) == []

    def test_missing_content_still_deletes_record(
        self, object_store: Any, content_store: Any
    ) -> None:
        """A record whose blob is already gone is still removed."""
        record = _put(object_store, "tenantA", "orphan.txt", b"x")
        (content_store.base_dir / record.file_path).unlink()

        outcomes = object_store.delete([record.url])

        assert outcomes[0].status == DeleteStatus.DELETED
        with pytest.raises(ObjectNotFoundError):
            object_store.get(record.url)

    def test_index_failure_is_reported_per_url(
        self, object_store: Any, metadata_index: Any
    ) -> None:
        """An index failure yields a FAILED outcome instead of raising."""
        record = _put(object_store, "tenantA", "a.txt", b"x")
        metadata_index.close()

        outcomes = object_store.delete([record.url])

        assert outcomes[0].status == DeleteStatus.FAILED
        assert outcomes[0].error is not None


class TestCopy:
    """Tests for copy."""

    def test_copy_creates_independent_object(self, object_store: Any) -> None:
        """Deleting the source leaves the copy readable."""
        source = _put(object_store, "tenantA", "src.txt", b"payload")

        copy = object_store.copy(
            "tenantA",
            source.url,
            CopyOptions(pathname="dst.txt", content_type="text/plain"),
        )
        object_store.delete([source.url])

        assert copy.pathname == "dst.txt"
        assert copy.size == len(b"payload")
        assert copy.file_path != source.file_path
        assert object_store.get(copy.url) == copy
        assert _read(object_store, copy) == b"payload"

    def test_copy_across_stores(self, object_store: Any) -> None:
        """A copy lands in the target store."""
        source = _put(object_store, "storeA", "src.txt", b"x")

        copy = object_store.copy("storeB", source.url, CopyOptions(pathname="src.txt"))

        assert copy.url == f"{BASE_URL}/public/storeB/src.txt"
        assert [o.url for o in object_store.list("storeB").blobs] == [copy.url]

    def test_copy_missing_source_raises_not_found(self, object_store: Any) -> None:
        """Copying from an unknown URL raises and creates nothing."""
        with pytest.raises(ObjectNotFoundError) as exc_info:
            object_store.copy(
                "tenantA",
                f"{BASE_URL}/public/tenantA/nope.txt",
                CopyOptions(pathname="dst.txt"),
            )

        assert exc_info.value.message == "From blob doesn't exist"
        assert object_store.list("tenantA").blobs == []

    def test_copy_with_random_suffix(self, object_store: Any) -> None:
        source = _put(object_store, "tenantA", "a.txt", b"x")

        copy = object_store.copy(
            "tenantA", source.url, CopyOptions(pathname="a.txt", add_random_suffix=True)
        )

        assert copy.url != source.url
        assert copy.pathname == "a.txt"
        assert object_store.get(source.url) == source


class TestInvalidInput:
    """Tests for rejected store ids and pathnames."""

    @pytest.mark.parametrize("pathname", ["../escape.txt", "a/../../b.txt", "/abs.txt", "a\\b"])
    def test_traversal_pathnames_rejected(self, object_store: Any, pathname: str) -> None:
        with pytest.raises(PathTraversalError):
            _put(object_store, "tenantA", pathname, b"x")

    @pytest.mark.parametrize("pathname", ["", "dir/", ".", "./.", "//"])
    def test_pathname_must_name_a_file(self, object_store: Any, pathname: str) -> None:
        with pytest.raises(InvalidObjectInputError):
            _put(object_store, "tenantA", pathname, b"x")

    @pytest.mark.parametrize("store", ["", "..", "a/b", ".hidden"])
    def test_invalid_store_ids_rejected(self, object_store: Any, store: str) -> None:
        with pytest.raises(InvalidObjectInputError):
            _put(object_store, store, "a.txt", b"x")

    def test_rejected_put_writes_nothing(self, object_store: Any) -> None:
        with pytest.raises(InvalidObjectInputError):
            _put(object_store, "tenantA", "../x.txt", b"x")

        assert object_store.list("tenantA").blobs == []


class TestPartialFailure:
    """Tests for failures between the content and metadata writes."""

    def test_metadata_failure_leaves_orphaned_content(
        self, object_store: Any, content_store: Any, metadata_index: Any
    ) -> None:
        """The blob written before a failed index write is not cleaned up."""
        metadata_index.close()

        with pytest.raises(MetadataIndexError):
            _put(object_store, "tenantA", "orphan.txt", b"x")

        assert (content_store.base_dir / "tenantA" / "orphan.txt").read_bytes() == b"x"

    def test_index_error_is_a_backend_error(self, object_store: Any, metadata_index: Any) -> None:
        metadata_index.close()

        with pytest.raises(StorageBackendError):
            object_store.get(f"{BASE_URL}/public/tenantA/a.txt")


class TestPathnameNormalization:
    """Tests that one object has exactly one name."""

    @pytest.mark.parametrize("variant", ["a//b.txt", "./a/b.txt", "a/./b.txt", "a/b.txt/."])
    def test_variants_address_the_same_object(self, object_store: Any, variant: str) -> None:
        """Redundant separators and "." segments map to the canonical URL."""
        first = _put(object_store, "tenantA", "a/b.txt", b"AAAA")
        second = _put(object_store, "tenantA", variant, b"BB")

        assert second.url == first.url
        assert second.pathname == "a/b.txt"
        assert second.file_path == first.file_path

        blobs = object_store.list("tenantA").blobs
        assert [o.url for o in blobs] == [first.url]
        assert blobs[0].size == 2
        assert _read(object_store, blobs[0]) == b"BB"

    def test_delete_leaves_no_record_without_content(self, object_store: Any) -> None:
        """After puts through two spellings and one delete, no live record is left dangling."""
        _put(object_store, "tenantA", "a/b.txt", b"AAAA")
        second = _put(object_store, "tenantA", "a//b.txt", b"BB")

        outcomes = object_store.delete([second.url])

        assert [o.status for o in outcomes] == [DeleteStatus.DELETED]
        assert object_store.list("tenantA").blobs == []
        with pytest.raises(ObjectNotFoundError):
            object_store.get(f"{BASE_URL}/public/tenantA/a/b.txt")

    def test_suffix_applies_to_normalized_name(self, object_store: Any) -> None:
        record = _put(object_store, "tenantA", ".//img//cat.png", b"x", add_random_suffix=True)

        assert record.pathname == "img/cat.png"
        assert re.match(
            rf"^{re.escape(BASE_URL)}/public/tenantA/img/cat-[0-9A-Za-z]{{30}}\.png$",
            record.url,
        )
        assert record.content_disposition == 'inline; filename="cat.png"'

    @pytest.mark.parametrize("pathname", [".", "./.", "x/.."])
    def test_dot_pathname_does_not_break_store(self, object_store: Any, pathname: str) -> None:
        """A pathname naming the store directory is rejected and the store keeps working."""
        with pytest.raises(InvalidObjectInputError):
            _put(object_store, "s", pathname, b"x")

        record = _put(object_store, "s", "img/cat.png", b"cat")

        assert _read(object_store, record) == b"cat"
        assert [o.pathname for o in object_store.list("s").blobs] == ["img/cat.png"]


class TestConcurrentPuts:
    """Tests for concurrent writers with distinct keys."""

    def test_concurrent_puts_are_all_indexed(self, object_store: Any) -> None:
        """Every concurrent put is retrievable and listed in URL order."""
        count = 32
        payloads = {f"file-{i:02d}.bin": os.urandom(64 + i) for i in range(count)}

        with ThreadPoolExecutor(max_workers=8) as pool:
            records = list(
                pool.map(
                    lambda item: _put(object_store, "tenantA", item[0], item[1]),
                    payloads.items(),
                )
            )

        for record in records:
            assert object_store.get(record.url) == record
            assert _read(object_store, record) == payloads[record.pathname]

        listed = [o.url for o in object_store.list("tenantA").blobs]
        assert listed == sorted(r.url for r in records)
        assert len(listed) == count

    def test_concurrent_puts_across_stores(self, object_store: Any) -> None:
        stores = [f"store{i}" for i in range(8)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda s: _put(object_store, s, "same.txt", s.encode()), stores))

        for store in stores:
            blobs = object_store.list(store).blobs
            assert len(blobs) == 1
            assert _read(object_store, blobs[0]) == store.encode()
