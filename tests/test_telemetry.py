"""Tests for OpenTelemetry tracing helpers."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from opentelemetry import trace

from routemcp.errors import ConfigurationError
from routemcp.telemetry import (
    ATTR_TOOL_NAME,
    _INSTRUMENTATION_NAME,
    configure_telemetry,
    get_tracer,
)


class TestGetTracer:
    def test_returns_tracer(self) -> None:
        tracer = get_tracer("test.module")
        assert isinstance(tracer, trace.Tracer)

    def test_default_name(self) -> None:
        assert _INSTRUMENTATION_NAME == "routemcp"
        assert isinstance(get_tracer(), trace.Tracer)

    def test_noop_span(self) -> None:
        """Without SDK configured, spans should be no-ops."""
        tracer = get_tracer("test.noop")
        with tracer.start_as_current_span("routemcp.tool.execute") as span:
            span.set_attribute(ATTR_TOOL_NAME, "GET_ping")


class TestConfigureTelemetry:
    def test_raises_without_sdk(self) -> None:
        with patch.dict("sys.modules", {"opentelemetry.sdk.resources": None}):
            with pytest.raises(ConfigurationError, match="opentelemetry-sdk"):
                configure_telemetry()

    def test_otlp_raises_without_exporter(self) -> None:
        pytest.importorskip("opentelemetry.sdk.trace")

        with patch.dict(
            "sys.modules",
            {"opentelemetry.exporter.otlp.proto.grpc.trace_exporter": None},
        ):
            with pytest.raises(ConfigurationError, match="opentelemetry-exporter-otlp"):
                configure_telemetry(otlp_endpoint="http://localhost:4317")

    def test_installs_provider_with_service_name(self) -> None:
        pytest.importorskip("opentelemetry.sdk.trace")

        with patch("routemcp.telemetry.trace.set_tracer_provider") as set_provider:
            configure_telemetry("Users API", console=True)

        provider = set_provider.call_args.args[0]
        assert provider.resource.attributes["service.name"] == "Users API"
