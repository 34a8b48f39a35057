"""Distributed tracing with OpenTelemetry.

Exporters:
- **console**: spans are written through Loguru at DEBUG level
- **otlp**: spans are shipped to an OTLP collector (Jaeger, Tempo, ...)
- **none**: a tracer provider is installed but nothing is exported

Store operations are wrapped in ``trace_operation`` spans so a slow rate
lookup can be told apart from a slow HTTP layer.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Final

from loguru import logger
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from taxman.core.context import RequestContext

if TYPE_CHECKING:
    from collections.abc import Generator, Sequence

    from fastapi import FastAPI

    from taxman.core.config import Settings

SERVICE_NAME_KEY: Final[str] = "service.name"
SERVICE_VERSION_KEY: Final[str] = "service.version"
ENVIRONMENT_KEY: Final[str] = "deployment.environment"
DEFAULT_OTLP_ENDPOINT: Final[str] = "http://localhost:4317"
EXCLUDED_URLS: Final[str] = "/health,/docs,/openapi.json"


class LoguruSpanExporter(SpanExporter):
    """Span exporter that writes finished spans through Loguru."""

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        """Log each finished span at DEBUG level."""
        for span in spans:
            span_context = span.get_span_context()
            if not span_context:
                continue

            duration_ms = None
            if span.end_time and span.start_time:
                duration_ms = (span.end_time - span.start_time) // 1_000_000

            attributes = dict(span.attributes or {})
            logger.bind(
                trace_id=f"0x{span_context.trace_id:032x}",
                span_id=f"0x{span_context.span_id:016x}",
                correlation_id=attributes.get(
                    "correlation_id", RequestContext.get_correlation_id()
                ),
                span_name=span.name,
                duration_ms=duration_ms,
                status=span.status.status_code.name,
            ).debug("Trace span completed: {}", span.name)

        return SpanExportResult.SUCCESS


def get_span_exporter(settings: Settings) -> SpanExporter | None:
    """Get the span exporter for the configured exporter type.

    Args:
        settings: Application settings.

    Returns:
        SpanExporter | None: Configured exporter or None if disabled.
    """
    config = settings.observability_config

    if config.exporter_type == "console":
        return LoguruSpanExporter()

    if config.exporter_type == "otlp":
        endpoint = config.exporter_endpoint or DEFAULT_OTLP_ENDPOINT
        logger.info("Using OTLP exporter at {}", endpoint)
        return OTLPSpanExporter(
            endpoint=endpoint,
            insecure=settings.environment == "development",
        )

    logger.info("Trace export disabled")
    return None


def setup_tracing(settings: Settings) -> None:
    """Install the global tracer provider.

    Args:
        settings: Application settings.
    """
    if not settings.observability_config.enable_tracing:
        logger.info("Tracing disabled by configuration")
        return

    resource = Resource.create(
        {
            SERVICE_NAME_KEY: settings.app_name,
            SERVICE_VERSION_KEY: settings.app_version,
            ENVIRONMENT_KEY: settings.environment,
        }
    )
    tracer_provider = TracerProvider(
        resource=resource,
        sampler=TraceIdRatioBased(settings.observability_config.trace_sample_rate),
    )

    if exporter := get_span_exporter(settings):
        tracer_provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(tracer_provider)

    logger.info(
        "Tracing configured",
        exporter_type=settings.observability_config.exporter_type,
        sample_rate=settings.observability_config.trace_sample_rate,
    )


def instrument_app(app: FastAPI, settings: Settings) -> None:
    """Instrument the FastAPI application and SQLAlchemy for tracing.

    Args:
        app: FastAPI application to instrument.
        settings: Application settings.
    """
    if not settings.observability_config.enable_tracing:
        return

    FastAPIInstrumentor.instrument_app(
        app,
        excluded_urls=EXCLUDED_URLS,
        server_request_hook=add_correlation_id_to_span,
    )
    SQLAlchemyInstrumentor().instrument()

    logger.info("Application instrumented for tracing")


def add_correlation_id_to_span(span: trace.Span, scope: dict[str, Any]) -> None:
    """Copy the correlation and request IDs onto the server span.

    Args:
        span: The current span.
        scope: ASGI scope dict containing request information.
    """
    if not span or not span.is_recording():
        return

    if correlation_id := RequestContext.get_correlation_id():
        span.set_attribute("correlation_id", correlation_id)

    headers = dict(scope.get("headers", []))
    if request_id := headers.get(b"x-request-id", b"").decode("utf-8"):
        span.set_attribute("request_id", request_id)


@contextmanager
def trace_operation(
    name: str, **attributes: str | int | float | bool
) -> Generator[trace.Span]:
    """Trace a custom operation as a child of the current span.

    Args:
        name: Operation name for the span.
        **attributes: Initial attributes for the span.

    Yields:
        Generator[trace.Span]: The created span for the operation.

    Example:
        >>> with trace_operation("tax_store.candidates", municipality="Copenhagen"):
        ...     rows = await repository.find_applicable(query)
    """
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(name) as span:
        for key, value in attributes.items():
            span.set_attribute(key, str(value))
        if correlation_id := RequestContext.get_correlation_id():
            span.set_attribute("correlation_id", correlation_id)
        yield span
