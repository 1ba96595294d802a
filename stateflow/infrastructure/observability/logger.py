"""Structured logging setup and the logging notification sink."""

import logging
from typing import Any

import structlog

from stateflow.domain.interfaces.notification_sink import NotificationSink
from stateflow.domain.models.events import (
    HistoryRecordedEvent,
    TransitionedEvent,
    TransitionFailedEvent,
    TransitioningEvent,
)

_SENSITIVE_KEYS = ("password", "token", "secret", "api_key")


def sanitize_for_logging(data: Any) -> Any:
    """Sanitize data to remove sensitive information before logging.

    Redacts values stored under secret-looking keys in dictionaries and
    nested structures, so transition metadata never leaks credentials.

    Args:
        data: Data structure to sanitize (dict, list, or primitive).

    Returns:
        Sanitized data structure with sensitive values redacted.
    """
    if isinstance(data, dict):
        sanitized = {}
        for key, value in data.items():
            if isinstance(key, str) and any(s in key.lower() for s in _SENSITIVE_KEYS):
                sanitized[key] = "[REDACTED]"
            else:
                # Recursively sanitize nested structures
                sanitized[key] = sanitize_for_logging(value)
        return sanitized
    elif isinstance(data, (list, tuple)):
        return [sanitize_for_logging(item) for item in data]
    return data


def configure_logging(log_level: str = "INFO", json_format: bool = True) -> None:
    """Configure structlog over standard logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, use JSON format for structured logging.
                    If False, use human-readable format (development mode).
    """
    processors = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_format:
        # JSON format for production
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Human-readable format for development
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard logging for structlog to wrap
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(message)s"
        if json_format
        else "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


class LoggingNotificationSink(NotificationSink):
    """Notification sink writing every lifecycle notification to the log.

    Each notification kind can be switched off independently.
    """

    def __init__(
        self,
        log_transitioning: bool = False,
        log_transitioned: bool = True,
        log_failures: bool = True,
        log_history: bool = True,
        logger_name: str = "stateflow",
    ) -> None:
        self._log_transitioning = log_transitioning
        self._log_transitioned = log_transitioned
        self._log_failures = log_failures
        self._log_history = log_history
        self._logger = structlog.get_logger(logger_name)

    def transitioning(self, event: TransitioningEvent) -> None:
        if self._log_transitioning:
            self._logger.debug("Transitioning", **self._fields(event))

    def transitioned(self, event: TransitionedEvent) -> None:
        if self._log_transitioned:
            self._logger.info("Transitioned", **self._fields(event))

    def transition_failed(self, event: TransitionFailedEvent) -> None:
        if self._log_failures:
            self._logger.warning(
                "Transition failed",
                error=event.error,
                error_kind=event.error_kind,
                **self._fields(event),
            )

    def history_recorded(self, event: HistoryRecordedEvent) -> None:
        if self._log_history:
            self._logger.info(
                "History recorded",
                record_id=event.record.id,
                summary=event.record.summary(),
            )

    def _fields(self, event: Any) -> dict[str, Any]:
        return {
            "entity_type": event.entity_type,
            "entity_id": event.entity_id,
            "field": event.field,
            "from_state": event.from_state,
            "to_state": event.to_state,
            "performer_id": event.performer_id,
            "reason": event.reason,
            "metadata": sanitize_for_logging(event.metadata),
        }
