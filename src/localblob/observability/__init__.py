"""localblob observability module.

Provides the OpenTelemetry tracing baseline.
"""

from localblob.observability.tracing import configure_tracing, get_current_trace_id

__all__ = ["configure_tracing", "get_current_trace_id"]
