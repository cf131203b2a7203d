"""
OpenTelemetry tracing setup.

Queue code obtains its tracer from the OpenTelemetry API, which is a
no-op until ``setup_tracing`` installs an SDK tracer provider.
"""

import logging
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Tracer

from flywheel_queue import __version__
from flywheel_queue.config import Settings, get_settings

logger = logging.getLogger(__name__)

TRACER_NAME = "flywheel_queue"


def setup_tracing(
    settings: Settings | None = None,
    enable_console_export: bool = False,
) -> Tracer:
    """
    Set up OpenTelemetry tracing.

    Installs an SDK tracer provider when ``otel_enabled`` is set or console
    export is requested; otherwise the API's no-op provider stays in place.

    Args:
        settings: Settings to read the exporter configuration from.
        enable_console_export: If True, also export spans to console.

    Returns:
        Tracer: The tracer instance.
    """
    settings = settings or get_settings()

    if not settings.otel_enabled and not enable_console_export:
        return get_tracer()

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
        }
    )
    provider = TracerProvider(resource=resource)

    if settings.otel_enabled:
        otlp_exporter = OTLPSpanExporter(
            endpoint=settings.otel_exporter_otlp_endpoint,
            insecure=True,
        )
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
        logger.info(
            "OTLP span export enabled",
            extra={"endpoint": settings.otel_exporter_otlp_endpoint},
        )

    if enable_console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)

    return get_tracer()


def instrument_fastapi(app: Any) -> None:
    """Instrument a FastAPI application with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def get_tracer() -> Tracer:
    """Get the queue tracer from the current global provider."""
    return trace.get_tracer(TRACER_NAME, __version__)
