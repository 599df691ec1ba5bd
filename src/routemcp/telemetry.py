"""OpenTelemetry tracing helpers for routemcp.

Provides a thin wrapper around the OpenTelemetry API so the rest of the
codebase can call ``get_tracer()`` without caring whether the SDK is
installed.  When the SDK is *not* configured the API returns no-op
implementations.

Usage::

    from routemcp.telemetry import get_tracer

    _tracer = get_tracer(__name__)

    with _tracer.start_as_current_span("routemcp.tool.execute") as span:
        span.set_attribute(ATTR_TOOL_NAME, "GET_users_id")

Real tracing is switched on by the ``telemetry`` section of
:class:`~routemcp.config.ServerConfig`; :class:`~routemcp.server.MCPServer`
then calls :func:`configure_telemetry` (requires ``pip install routemcp[otel]``).
"""

from __future__ import annotations

import logging

from opentelemetry import trace

from routemcp.errors import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Semantic attribute keys used throughout routemcp instrumentation
# ---------------------------------------------------------------------------

ATTR_RPC_METHOD = "routemcp.rpc.method"
ATTR_TOOL_NAME = "routemcp.tool.name"
ATTR_HTTP_METHOD = "http.request.method"
ATTR_HTTP_URL = "url.full"
ATTR_HTTP_STATUS = "http.response.status_code"

_INSTRUMENTATION_NAME = "routemcp"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return a :class:`~opentelemetry.trace.Tracer` for *name*.

    If the OpenTelemetry SDK has not been configured the returned tracer
    is a no-op.
    """
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


_MISSING_EXTRA = "{package} is required for {feature}. Install it with: pip install routemcp[otel]"


def configure_telemetry(
    service_name: str = _INSTRUMENTATION_NAME,
    *,
    console: bool = False,
    otlp_endpoint: str | None = None,
) -> None:
    """Install an SDK tracer provider exporting the dispatch and tool-call spans.

    Spans go to stdout when *console* is set and to an OTLP/gRPC collector
    when *otlp_endpoint* is given; both may be active at once.

    Raises:
        ConfigurationError: If the ``otel`` extra is not installed.
    """
    try:
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace.export import (  # pyright: ignore[reportMissingImports]
            BatchSpanProcessor,
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )
    except ImportError as exc:
        raise ConfigurationError(
            _MISSING_EXTRA.format(package="opentelemetry-sdk", feature="tracing")
        ) from exc

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    if console:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    if otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(_otlp_exporter(otlp_endpoint)))

    trace.set_tracer_provider(provider)
    logger.info(
        "Tracing enabled for %s (console=%s, otlp=%s)", service_name, console, otlp_endpoint or "off"
    )


def _otlp_exporter(endpoint: str) -> object:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter  # pyright: ignore[reportMissingImports]
    except ImportError as exc:
        raise ConfigurationError(
            _MISSING_EXTRA.format(package="opentelemetry-exporter-otlp", feature="OTLP export")
        ) from exc
    return OTLPSpanExporter(endpoint=endpoint)
