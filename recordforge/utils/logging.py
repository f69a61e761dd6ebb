"""Structured logging configuration for RecordForge.

Provides:
- structlog setup over the standard library
- Scoped logging context
- Operation start/end logging
- A session-scoped logger for recording lifecycles
"""

import logging
import sys
from contextlib import contextmanager
from typing import Optional

import structlog


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    include_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Output logs as JSON
        include_timestamp: Include timestamps in logs
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None, **context) -> structlog.BoundLogger:
    """Get a configured logger with optional context.

    Args:
        name: Logger name
        **context: Additional context to bind

    Returns:
        Configured structlog logger
    """
    logger = structlog.get_logger(name)
    if context:
        logger = logger.bind(**context)
    return logger


class LogContext:
    """Context manager for scoped logging context.

    Usage:
        with LogContext(session_id="rec-123", component="ingest"):
            logger.info("Event admitted")
            # All logs within this block have session_id and component bound
    """

    def __init__(self, **context):
        self.context = context
        self._bound = False

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self.context)
        self._bound = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._bound:
            structlog.contextvars.unbind_contextvars(*self.context.keys())
            self._bound = False


@contextmanager
def log_operation(
    operation: str,
    logger: Optional[structlog.BoundLogger] = None,
    **context,
):
    """Context manager for logging operation start/end.

    Args:
        operation: Name of the operation
        logger: Optional logger to use
        **context: Additional context

    Yields:
        Dict to store operation results

    Example:
        with log_operation("generate_code", language="java") as op:
            result = generator.generate(request)
            op["lines"] = result.code.count("\\n")
    """
    log = logger or get_logger()
    log = log.bind(operation=operation, **context)

    log.debug(f"{operation} started")
    result = {"success": False, "error": None}

    try:
        yield result
        result["success"] = True
        log.debug(f"{operation} completed", **result)
    except Exception as e:
        result["error"] = str(e)
        log.error(f"{operation} failed", **result)
        raise


class SessionLogger:
    """Logger specialized for recording session tracking."""

    def __init__(self, session_id: str, session_name: str):
        self.log = get_logger().bind(
            session_id=session_id,
            session_name=session_name,
        )
        self.admitted = 0
        self.rejected = 0
        self.duplicates = 0

    def session_started(self, **metadata) -> None:
        self.log.info("Recording session started", **metadata)

    def session_ended(self, status: str, duration_ms: int) -> None:
        self.log.info(
            "Recording session ended",
            status=status,
            duration_ms=duration_ms,
            events_admitted=self.admitted,
            events_rejected=self.rejected,
            duplicates_dropped=self.duplicates,
        )

    def event_admitted(self, event_id: str, kind: str) -> None:
        self.admitted += 1
        self.log.debug("Event admitted", event_id=event_id, kind=kind)

    def event_rejected(self, event_id: str, kind: str, reason: str) -> None:
        self.rejected += 1
        self.log.debug("Event rejected", event_id=event_id, kind=kind, reason=reason)

    def duplicate_dropped(self, event_id: str, kind: str) -> None:
        self.duplicates += 1
        self.log.debug("Duplicate event dropped", event_id=event_id, kind=kind)
