from __future__ import annotations

import logging

from fastapi import FastAPI
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from jobly.core.config import Settings
from jobly.core.telemetry import (
    _build_exporter,
    _parse_headers,
    configure_api_logging,
    record_response_status,
    setup_api_telemetry,
    shutdown_api_telemetry,
)


def test_setup_and_shutdown_without_exporter_endpoint() -> None:
    app = FastAPI()
    settings = Settings(otel_enabled=True, otel_exporter_otlp_endpoint=None, otel_service_name="jobly-test")

    runtime = setup_api_telemetry(app, settings)

    assert runtime.enabled is True
    assert runtime.exporting is False
    assert app.state.telemetry is runtime

    shutdown_api_telemetry(app)
    assert app.state.telemetry is None
    # A second shutdown is a no-op.
    shutdown_api_telemetry(app)


def test_disabled_telemetry_keeps_no_provider() -> None:
    app = FastAPI()

    runtime = setup_api_telemetry(app, Settings(otel_enabled=False))

    assert runtime.enabled is False
    assert runtime.provider is None
    shutdown_api_telemetry(app)


def test_exporter_uses_configured_endpoint_and_headers() -> None:
    settings = Settings(
        otel_exporter_otlp_endpoint="http://collector:4318/v1/traces",
        otel_exporter_otlp_headers="x-api-key=abc, x-tenant = jobly,broken",
    )

    assert isinstance(_build_exporter(settings), OTLPSpanExporter)
    assert _parse_headers(settings.otel_exporter_otlp_headers) == {"x-api-key": "abc", "x-tenant": "jobly"}
    assert _build_exporter(Settings(otel_exporter_otlp_endpoint=None)) is None


def test_server_error_status_marks_span_as_error() -> None:
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    tracer = provider.get_tracer("jobly-test")

    with tracer.start_as_current_span("GET /jobs") as ok_span:
        record_response_status(ok_span, 200)
    with tracer.start_as_current_span("GET /jobs") as failed_span:
        record_response_status(failed_span, 503)

    ok, failed = exporter.get_finished_spans()
    assert ok.attributes["http.response.status_code"] == 200
    assert ok.status.status_code is StatusCode.UNSET
    assert failed.attributes["http.response.status_code"] == 503
    assert failed.status.status_code is StatusCode.ERROR


def test_log_records_carry_active_trace_ids() -> None:
    configure_api_logging(Settings(otel_log_correlation=True))
    provider = TracerProvider()
    test_logger = logging.getLogger("jobly.test")

    with provider.get_tracer("jobly-test").start_as_current_span("work") as span:
        record = test_logger.makeRecord("jobly.test", logging.INFO, __file__, 1, "inside", (), None)
        context = span.get_span_context()

    assert record.trace_id == format(context.trace_id, "032x")
    assert record.span_id == format(context.span_id, "016x")

    outside = test_logger.makeRecord("jobly.test", logging.INFO, __file__, 1, "outside", (), None)
    assert outside.trace_id == "-"
