"""OpenTelemetry and structlog integration for the Datto RMM client."""

from __future__ import annotations

import logging
from contextlib import ExitStack, contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

SCOPE_VERSION = "0.1.0"

if TYPE_CHECKING:
    from collections.abc import Generator

    from .config import TelemetryConfig
    from .platforms import Platform

# Module-level tracer and logger
_tracer: trace.Tracer | None = None
_logger: structlog.BoundLogger | None = None


def get_tracer() -> trace.Tracer:
    """Get or create the client tracer."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("datto-rmm", SCOPE_VERSION)
    return _tracer


def get_logger() -> structlog.BoundLogger:
    """Get or create the client logger."""
    global _logger
    if _logger is None:
        _logger = structlog.get_logger("datto-rmm")
    return _logger


def configure_telemetry(config: TelemetryConfig) -> None:
    """Configure logging and tracing.

    With telemetry disabled, spans become no-ops and logging is left as
    the application configured it.

    Args:
        config: Telemetry configuration.
    """
    global _tracer, _logger

    if not config.enabled:
        _tracer = trace.NoOpTracer()
        return

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _tracer = trace.get_tracer(config.service_name, SCOPE_VERSION)
    _logger = structlog.get_logger(config.service_name)


@contextmanager
def trace_operation(
    name: str,
    *,
    platform: Platform | None = None,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Context manager for tracing an operation.

    With ``platform`` set, the span gets a ``datto.platform`` attribute and
    every log event emitted inside the block carries ``platform`` through
    ``structlog.contextvars``.

    Args:
        name: Name of the operation.
        platform: Platform the operation talks to.
        attributes: Optional span attributes.

    Yields:
        The active span.
    """
    tracer = get_tracer()
    with ExitStack() as stack:
        span = stack.enter_context(tracer.start_as_current_span(name))
        if platform is not None:
            span.set_attribute("datto.platform", str(platform))
            stack.enter_context(
                structlog.contextvars.bound_contextvars(platform=str(platform))
            )
        for key, value in (attributes or {}).items():
            span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise
