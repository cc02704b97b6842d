"""
Structured logging configuration using structlog.

- JSON logging for production
- Correlation IDs for tracking a reconciliation run
- Sensitive data filtering
- Performance timing
"""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, cast

import structlog
from structlog.types import EventDict, Processor

if TYPE_CHECKING:
    from travelledger.utils.config import Settings

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Set correlation ID for the current context.

    Args:
        correlation_id: Custom correlation ID. If None, generates a new UUID.

    Returns:
        The correlation ID that was set.
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    _correlation_id_var.set(correlation_id)
    return correlation_id


def get_correlation_id() -> str | None:
    """Get the current correlation ID from context."""
    return _correlation_id_var.get()


def clear_correlation_id() -> None:
    """Clear the correlation ID from context."""
    _correlation_id_var.set(None)


def add_correlation_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add correlation ID to all log entries.

    One auto-match batch or CLI invocation shares a single correlation ID.
    """
    if "correlation_id" not in event_dict:
        event_dict["correlation_id"] = get_correlation_id()
    return event_dict


def filter_sensitive_data(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Redact credentials and account numbers before they reach a sink."""
    sensitive_keys = {
        "password",
        "api_key",
        "secret",
        "token",
        "database_url",
        "iban",
    }

    for key in sensitive_keys:
        if key in event_dict:
            event_dict[key] = "***REDACTED***"

    if "event" in event_dict and isinstance(event_dict["event"], dict):
        for key in sensitive_keys:
            if key in event_dict["event"]:
                event_dict["event"][key] = "***REDACTED***"

    return event_dict


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add application context to every log entry."""
    from travelledger import __version__

    event_dict["app"] = "travelledger"
    event_dict["version"] = __version__
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    dev_mode: bool = True,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Whether to output JSON logs (recommended for production)
        dev_mode: Whether to use development-friendly output
    """
    shared_processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_correlation_id,
        add_app_context,
        filter_sensitive_data,
    ]

    if dev_mode:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    elif json_logs:
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "event"]),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
        force=True,
    )


def configure_from_settings(settings: "Settings") -> None:
    """Apply the logging section of ``Settings``."""
    configure_logging(
        log_level="DEBUG" if settings.debug else settings.log_level,
        json_logs=settings.json_logs,
        dev_mode=not settings.json_logs,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("match_confirmed", transaction_id="t1", record_id="r1")
    """
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))


class LogPerformance:
    """
    Context manager for logging performance metrics.

    Usage:
        with LogPerformance("auto_match", logger):
            service.auto_match(transactions, records)
    """

    def __init__(self, operation: str, logger: structlog.stdlib.BoundLogger):
        self.operation = operation
        self.logger = logger
        self.start_time: float = 0
        self.duration: float = 0

    def __enter__(self) -> "LogPerformance":
        self.start_time = time.perf_counter()
        self.logger.debug(f"{self.operation}_started")
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.duration = time.perf_counter() - self.start_time

        if exc_type is None:
            self.logger.info(
                f"{self.operation}_completed",
                duration_ms=round(self.duration * 1000, 2),
                operation=self.operation,
            )
        else:
            self.logger.error(
                f"{self.operation}_failed",
                duration_ms=round(self.duration * 1000, 2),
                operation=self.operation,
                error=str(exc_val),
                error_type=exc_type.__name__ if exc_type else None,
            )


# Audit logging helpers
def log_match_confirmed(
    logger: structlog.stdlib.BoundLogger,
    match_id: str,
    transaction_id: str,
    record_id: str,
    match_type: str,
    confidence: float | None,
) -> None:
    """Log a confirmed match for the audit trail."""
    logger.info(
        "match_confirmed",
        action="confirm",
        resource="match",
        match_id=match_id,
        transaction_id=transaction_id,
        record_id=record_id,
        match_type=match_type,
        confidence=confidence,
    )


def log_match_unlinked(
    logger: structlog.stdlib.BoundLogger,
    match_id: str,
    transaction_id: str,
    record_id: str,
) -> None:
    """Log an unlinked match for the audit trail."""
    logger.info(
        "match_unlinked",
        action="unlink",
        resource="match",
        match_id=match_id,
        transaction_id=transaction_id,
        record_id=record_id,
    )


# Initialize logging on module import
configure_logging()
