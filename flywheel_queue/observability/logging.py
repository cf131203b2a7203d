"""
Structured logging setup using structlog.
"""

import logging
import sys
from typing import Any

import structlog
from opentelemetry import trace

from flywheel_queue.config import Settings, get_settings


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Add OpenTelemetry trace context to log records.

    Only adds ids while a recording span is active, i.e. inside a job
    execution when tracing is enabled.
    """
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure structured logging for the application.

    Queue modules log through the standard library with ``extra=`` fields;
    the ProcessorFormatter renders those records as JSON or console output.

    Args:
        settings: Settings to read the level and format from. Defaults to
            the cached environment settings.
    """
    settings = settings or get_settings()

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]

    if settings.log_format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def bind_job_context(queue: str, job_id: str, attempt: int) -> None:
    """
    Bind the executing job to all log messages emitted by its handler.

    Each job runs in its own asyncio task, which copies the context,
    so bindings never leak between concurrently executing jobs.
    """
    structlog.contextvars.bind_contextvars(queue=queue, job_id=job_id, attempt=attempt)
