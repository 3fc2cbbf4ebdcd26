"""localblob API middleware."""

from localblob.api.middleware.request_id import RequestIdMiddleware

__all__ = ["RequestIdMiddleware"]
