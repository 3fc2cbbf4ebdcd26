"""OpenTelemetry tracing configuration for localblob.

Tracing is off unless explicitly enabled. When enabled, request spans come
from the FastAPI instrumentation and storage spans from
localblob.storage.tracing.

Environment Variables:
    LOCALBLOB_OTEL_ENABLED: Set to "1" to enable tracing (default: disabled)
    LOCALBLOB_REQUIRE_OTEL: Set to "1" to fail startup if tracing cannot initialize
    LOCALBLOB_OTEL_SERVICE_NAME: Service name for spans (default: "localblob")
    LOCALBLOB_OTEL_EXPORTER: "otlp" or "console" (default: "otlp")
    LOCALBLOB_OTEL_EXPORTER_OTLP_ENDPOINT: OTLP endpoint URL (optional)
    LOCALBLOB_OTEL_EXPORTER_OTLP_PROTOCOL: "grpc" or "http" (default: "grpc")
    LOCALBLOB_OTEL_RESOURCE_ATTRS: Comma-separated k=v resource attributes
    LOCALBLOB_OTEL_TEST_CAPTURE: Set to "1" to capture spans in memory (tests)

Never export Authorization headers, request bodies or absolute filesystem
paths as span attributes.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
    from opentelemetry.sdk.trace.export import SpanExporter

logger = logging.getLogger(__name__)

ENV_PREFIX = "LOCALBLOB_"
_TRUE_VALUES = frozenset({"1", "true", "yes"})

_tracer_provider: TracerProvider | None = None
_is_configured: bool = False
# The global provider can be installed only once per process, so the in-memory
# exporter outlives reset_tracing() and is reused by later configure calls.
_test_exporter: Any = None


class TracingConfigError(Exception):
    """Tracing could not be initialized while LOCALBLOB_REQUIRE_OTEL=1."""


def _env(name: str, default: str = "") -> str:
    return os.environ.get(ENV_PREFIX + name, "").strip() or default


def _env_flag(name: str) -> bool:
    return _env(name).lower() in _TRUE_VALUES


def is_tracing_enabled() -> bool:
    return _env_flag("OTEL_ENABLED")


def _parse_resource_attrs(raw: str) -> dict[str, str]:
    """Parse "k1=v1,k2=v2"; entries without "=" are ignored."""
    attrs: dict[str, str] = {}
    for pair in raw.split(","):
        key, sep, value = pair.partition("=")
        if sep and key.strip():
            attrs[key.strip()] = value.strip()
    return attrs


@dataclass(frozen=True)
class TracingConfig:
    """Tracing options read from the environment."""

    enabled: bool
    required: bool
    test_capture: bool
    service_name: str = "localblob"
    exporter: str = "otlp"
    otlp_endpoint: str | None = None
    otlp_protocol: str = "grpc"
    resource_attrs: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> TracingConfig:
        return cls(
            enabled=is_tracing_enabled(),
            required=_env_flag("REQUIRE_OTEL"),
            test_capture=_env_flag("OTEL_TEST_CAPTURE"),
            service_name=_env("OTEL_SERVICE_NAME", "localblob"),
            exporter=_env("OTEL_EXPORTER", "otlp").lower(),
            otlp_endpoint=_env("OTEL_EXPORTER_OTLP_ENDPOINT") or None,
            otlp_protocol=_env("OTEL_EXPORTER_OTLP_PROTOCOL", "grpc").lower(),
            resource_attrs=_parse_resource_attrs(_env("OTEL_RESOURCE_ATTRS")),
        )

    @property
    def exporter_label(self) -> str:
        return "in-memory" if self.test_capture else self.exporter


def _build_otlp_exporter(config: TracingConfig) -> SpanExporter:
    kwargs: dict[str, Any] = {}
    if config.otlp_endpoint:
        kwargs["endpoint"] = config.otlp_endpoint

    if config.otlp_protocol == "http":
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    else:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (  # type: ignore[assignment]
            OTLPSpanExporter,
        )

    return OTLPSpanExporter(**kwargs)


def _add_span_processor(provider: TracerProvider, config: TracingConfig) -> None:
    """Attach the exporter selected by config to provider."""
    global _test_exporter

    from opentelemetry.sdk.trace.export import (
        BatchSpanProcessor,
        ConsoleSpanExporter,
        SimpleSpanProcessor,
    )

    if config.test_capture:
        from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

        _test_exporter = InMemorySpanExporter()
        provider.add_span_processor(SimpleSpanProcessor(_test_exporter))
    elif config.exporter == "console":
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    else:
        provider.add_span_processor(BatchSpanProcessor(_build_otlp_exporter(config)))


def configure_tracing() -> bool:
    """Install the global TracerProvider described by the environment.

    Idempotent - safe to call once per app.

    Returns:
        True if tracing is enabled and configured, False otherwise.

    Raises:
        TracingConfigError: If LOCALBLOB_REQUIRE_OTEL=1 and configuration fails.
    """
    global _tracer_provider, _is_configured

    config = TracingConfig.from_env()

    if not config.enabled:
        _is_configured = True
        logger.debug("OpenTelemetry tracing disabled")
        return False

    if config.test_capture and _test_exporter is not None:
        return True

    if _is_configured and _tracer_provider is not None:
        return True

    _is_configured = True

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider

        resource = Resource.create({"service.name": config.service_name, **config.resource_attrs})
        provider = TracerProvider(resource=resource)
        _add_span_processor(provider, config)

        trace.set_tracer_provider(provider)
        _tracer_provider = provider

    except Exception as e:
        logger.error("Failed to configure OpenTelemetry tracing: %s", e)
        if config.required:
            raise TracingConfigError(
                f"OpenTelemetry tracing required but configuration failed: {e}"
            ) from e
        return False

    logger.info(
        "OpenTelemetry tracing configured: service=%s exporter=%s",
        config.service_name,
        config.exporter_label,
    )
    return True


def instrument_fastapi(app: Any) -> None:
    """Emit a server span per request, except for /health."""
    if not is_tracing_enabled():
        return

    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(app, excluded_urls="health")
    except Exception as e:
        logger.warning("Failed to instrument FastAPI: %s", e)


def get_current_trace_id() -> str | None:
    """Hex trace id of the active span, or None outside a recorded trace."""
    from opentelemetry import trace

    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return None
    return format(ctx.trace_id, "032x")


def set_span_attributes(attributes: dict[str, Any]) -> None:
    """Set attributes on the active span; None values are skipped."""
    from opentelemetry import trace

    span = trace.get_current_span()
    if not span.is_recording():
        return
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(key, str(value))


def get_test_spans() -> list[ReadableSpan]:
    """Spans captured by the in-memory exporter (tests only)."""
    if _test_exporter is None:
        return []
    return list(_test_exporter.get_finished_spans())


def clear_test_spans() -> None:
    if _test_exporter is not None:
        _test_exporter.clear()


def reset_tracing() -> None:
    """Forget configuration state between tests.

    Captured spans are cleared; the installed provider stays.
    """
    global _is_configured

    clear_test_spans()
    _is_configured = False
