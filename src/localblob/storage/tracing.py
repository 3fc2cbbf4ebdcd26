"""OpenTelemetry tracing for localblob object store operations.

Provides a decorator that wraps ObjectStore operations in spans.

Security:
    - Never export absolute filesystem paths in span attributes
    - URLs and pathnames are exported as SHA-256 digests only
"""

from __future__ import annotations

import functools
import hashlib
import logging
from collections.abc import Callable
from typing import Any, TypeVar, cast

from localblob.observability.tracing import is_tracing_enabled

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Operations whose first positional argument is the store id
_STORE_SCOPED_OPERATIONS = frozenset({"put", "list", "copy"})


def _sha256(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def traced_storage_operation(operation: str) -> Callable[[F], F]:
    """Decorator to trace object store operations with OpenTelemetry.

    Args:
        operation: Operation name ("put", "get", "delete", "list", "copy").

    Returns:
        Decorated function that emits spans when tracing is enabled.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            if not is_tracing_enabled():
                return func(self, *args, **kwargs)

            try:
                from opentelemetry import trace
            except ImportError:
                return func(self, *args, **kwargs)

            tracer = trace.get_tracer("localblob.object_store")

            with tracer.start_as_current_span(f"localblob.object_store.{operation}") as span:
                span.set_attribute("storage.backend", getattr(self, "backend_name", "unknown"))
                if operation in _STORE_SCOPED_OPERATIONS and args:
                    span.set_attribute("localblob.store", str(args[0]))
                if operation == "get" and args:
                    span.set_attribute("localblob.url_sha256", _sha256(str(args[0])))

                try:
                    result = func(self, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

                if result is not None:
                    _add_result_attributes(span, result, operation)

                return result

        return cast(F, wrapper)

    return decorator


def _add_result_attributes(span: Any, result: Any, operation: str) -> None:
    """Add result-based attributes to span safely.

    Only adds digests, sizes, content types and counts.
    """
    try:
        from localblob.storage.models import BlobObject, DeleteStatus, ListResult

        if isinstance(result, BlobObject):
            span.set_attribute("localblob.url_sha256", _sha256(result.url))
            span.set_attribute("localblob.pathname_sha256", _sha256(result.pathname))
            span.set_attribute("localblob.object_size_bytes", result.size)
            if result.content_type:
                span.set_attribute("localblob.object_content_type", result.content_type)

        if operation == "list" and isinstance(result, ListResult):
            span.set_attribute("localblob.object_count", len(result.blobs))

        if operation == "delete" and isinstance(result, list):
            for status in DeleteStatus:
                count = sum(1 for outcome in result if outcome.status == status)
                span.set_attribute(f"localblob.delete.{status.value.lower()}", count)

    except Exception as e:
        logger.debug("Failed to add result attributes to span: %s", e)
