"""
CLARK Entities - Observability Package

Structured logging with OpenTelemetry trace context.

Usage:
    from observability import setup_logging, get_logger

    # Initialize at application startup
    setup_logging()

    logger = get_logger(__name__)
"""
from observability.logging import (
    LogContext,
    add_trace_context,
    build_processors,
    get_logger,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "LogContext",
    "add_trace_context",
    "build_processors",
    "get_logger",
    "setup_logging",
    "shutdown_logging",
]
