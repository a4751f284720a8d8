from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
import logging

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import DEPLOYMENT_ENVIRONMENT, SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

from jobly.core.config import Settings

PLAIN_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
CORRELATED_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s trace_id=%(trace_id)s span_id=%(span_id)s %(message)s"

logger = logging.getLogger(__name__)
_tracer = trace.get_tracer("jobly.api")
_httpx_instrumentor = HTTPXClientInstrumentor()
_base_record_factory = logging.getLogRecordFactory()
_correlation_installed = False


@dataclass(slots=True)
class TelemetryRuntime:
    provider: TracerProvider | None = None
    exporting: bool = False

    @property
    def enabled(self) -> bool:
        return self.provider is not None


def configure_api_logging(settings: Settings) -> None:
    """Configure root logging; records carry trace/span ids when correlation is on."""
    log_format = PLAIN_LOG_FORMAT
    if settings.otel_log_correlation:
        _install_log_correlation()
        log_format = CORRELATED_LOG_FORMAT
    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=logging.INFO, format=log_format)


def setup_api_telemetry(app: FastAPI, settings: Settings) -> TelemetryRuntime:
    """Install the tracer provider and outbound httpx spans, remembering them on ``app.state``."""
    runtime = TelemetryRuntime()
    app.state.telemetry = runtime
    if not settings.otel_enabled:
        return runtime

    provider = TracerProvider(
        resource=Resource.create(
            {
                SERVICE_NAME: settings.otel_service_name,
                DEPLOYMENT_ENVIRONMENT: settings.environment,
            }
        ),
        sampler=ParentBased(TraceIdRatioBased(settings.otel_trace_sample_ratio)),
    )
    exporter = _build_exporter(settings)
    if exporter is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))
        runtime.exporting = True

    trace.set_tracer_provider(provider)
    # Identity-provider calls become child spans of the request span.
    _httpx_instrumentor.instrument(tracer_provider=provider)
    runtime.provider = provider
    logger.info(
        "tracing enabled service=%s exporting=%s sample_ratio=%s",
        settings.otel_service_name,
        runtime.exporting,
        settings.otel_trace_sample_ratio,
    )
    return runtime


def shutdown_api_telemetry(app: FastAPI) -> None:
    runtime: TelemetryRuntime | None = getattr(app.state, "telemetry", None)
    if runtime is None or runtime.provider is None:
        return
    _httpx_instrumentor.uninstrument()
    runtime.provider.force_flush()
    runtime.provider.shutdown()
    app.state.telemetry = None


@contextmanager
def request_span(method: str, path: str) -> Iterator[Span]:
    """Open the server span for one HTTP request."""
    with _tracer.start_as_current_span(
        f"{method} {path}",
        kind=SpanKind.SERVER,
        attributes={"http.request.method": method, "url.path": path},
    ) as span:
        yield span


def record_response_status(span: Span, status_code: int) -> None:
    span.set_attribute("http.response.status_code", status_code)
    if status_code >= 500:
        span.set_status(Status(StatusCode.ERROR))


def _build_exporter(settings: Settings) -> OTLPSpanExporter | None:
    endpoint = settings.otel_exporter_otlp_endpoint
    if not endpoint:
        logger.info("no OTLP endpoint set; spans for service=%s stay in process", settings.otel_service_name)
        return None
    return OTLPSpanExporter(endpoint=endpoint, headers=_parse_headers(settings.otel_exporter_otlp_headers) or None)


def _parse_headers(raw: str | None) -> dict[str, str]:
    """Parse ``key=value,key2=value2`` as used by OTEL_EXPORTER_OTLP_HEADERS."""
    if not raw:
        return {}
    parsed: dict[str, str] = {}
    for item in raw.split(","):
        key, separator, value = item.partition("=")
        if separator and key.strip():
            parsed[key.strip()] = value.strip()
    return parsed


def _install_log_correlation() -> None:
    global _correlation_installed
    if _correlation_installed:
        return

    def record_factory(*args: object, **kwargs: object) -> logging.LogRecord:
        record = _base_record_factory(*args, **kwargs)
        context = trace.get_current_span().get_span_context()
        record.trace_id = format(context.trace_id, "032x") if context.is_valid else "-"
        record.span_id = format(context.span_id, "016x") if context.is_valid else "-"
        return record

    logging.setLogRecordFactory(record_factory)
    _correlation_installed = True
