"""
CLARK Entities - Structured Logging with Trace Context

Integrates structlog with the standard library and OpenTelemetry trace
context, so that log lines emitted while rebuilding or validating entities
carry the trace_id/span_id of the request that triggered them.

Usage:
    from observability.logging import setup_logging, get_logger

    # Setup at startup (host application)
    setup_logging(LoggingConfig(level="INFO", json_format=True))

    # Get logger
    logger = get_logger(__name__)
    logger.info("learning_object_rebuilt", name="Intro to Testing")
"""
from __future__ import annotations

import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.types import EventDict, WrappedLogger

from config import LoggingConfig

# Global state
_structlog_configured: bool = False
_configured: bool = False


def add_trace_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """
    Structlog processor that adds OpenTelemetry trace context to log events.
    """
    from opentelemetry import trace

    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        if ctx.is_valid:
            event_dict["trace_id"] = format(ctx.trace_id, "032x")
            event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def add_service_context(service_name: str) -> structlog.types.Processor:
    """Create a processor that adds the service name to all log events."""

    def processor(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict["service"] = service_name
        return event_dict

    return processor


def build_processors(config: LoggingConfig) -> List[structlog.types.Processor]:
    """Processor chain shared by every structlog logger in the package."""
    processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_context(config.service_name),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_trace_context,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if config.json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    return processors


def _configure_structlog(config: LoggingConfig) -> None:
    global _structlog_configured

    structlog.configure(
        processors=build_processors(config),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _structlog_configured = True


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Configure structlog and the root stdlib logger.

    Meant to be called once by the host application; the entity library
    itself never installs handlers.
    """
    global _configured

    if _configured:
        return

    config = config or LoggingConfig()
    _configure_structlog(config)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if config.log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(console_handler)

    logging.getLogger("opentelemetry").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger routed through stdlib logging.

    Example:
        >>> logger = get_logger("clark.reconstruction")
        >>> logger.warning("shadowed_field", entity="LearningObject", key="name")
    """
    if not _structlog_configured:
        _configure_structlog(LoggingConfig())

    return structlog.get_logger(name)


def shutdown_logging() -> None:
    """Flush handlers and allow a later setup_logging() call to reconfigure."""
    global _configured, _structlog_configured

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.flush()

    structlog.reset_defaults()
    _configured = False
    _structlog_configured = False


class LogContext:
    """
    Context manager for adding contextual information to all logs.

    Example:
        >>> with LogContext(learning_object_id="5b9f..."):
        ...     LearningObject.instantiate(document)
    """

    def __init__(self, **kwargs: Any):
        self.context = kwargs
        self._tokens: Any = None

    def __enter__(self) -> "LogContext":
        self._tokens = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)
