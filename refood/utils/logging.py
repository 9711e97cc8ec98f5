"""Structured logging configuration."""

import logging
import sys
from typing import Any

import structlog
from pythonjsonlogger import jsonlogger

from refood.config import get_settings


def setup_logging() -> None:
    """Configure structured logging for the application."""
    settings = get_settings()

    # Configure standard library logging
    log_level = getattr(logging, settings.log_level)

    if settings.log_format == "json":
        # JSON logging for production
        handler = logging.StreamHandler(sys.stdout)
        formatter = jsonlogger.JsonFormatter(
            fmt="%(timestamp)s %(level)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
        )
        handler.setFormatter(formatter)
    else:
        # Human-readable logging for development
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer() if settings.log_format == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class LifecycleLogger:
    """Specialized logger for reservation lifecycle events."""

    def __init__(self, component: str):
        self.component = component
        self.logger = get_logger(component)

    def log_transition(
        self,
        reservation_id: int,
        from_state: str,
        to_state: str,
        duration_ms: float | None = None,
        **kwargs: Any,
    ) -> None:
        """Log a completed state change."""
        log_data = {
            "component": self.component,
            "reservation_id": reservation_id,
            "from_state": from_state,
            "to_state": to_state,
        }

        if duration_ms is not None:
            log_data["duration_ms"] = duration_ms

        log_data.update(kwargs)
        self.logger.info("reservation_transition", **log_data)

    def log_fallback(
        self,
        reservation_id: int,
        target: str,
        strategy: str,
        success: bool,
        **kwargs: Any,
    ) -> None:
        """Log a fallback resolution attempt."""
        self.logger.warning(
            "reservation_fallback",
            component=self.component,
            reservation_id=reservation_id,
            target=target,
            strategy=strategy,
            success=success,
            **kwargs,
        )

    def log_delivery(
        self,
        audience: str,
        center_id: int,
        event_kind: str,
        success: bool,
        **kwargs: Any,
    ) -> None:
        """Log a notification delivery to one audience."""
        log_method = self.logger.info if success else self.logger.warning
        log_method(
            "notification_delivery",
            component=self.component,
            audience=audience,
            center_id=center_id,
            event_kind=event_kind,
            success=success,
            **kwargs,
        )

    def log_error(
        self,
        error: str,
        operation: str,
        **kwargs: Any,
    ) -> None:
        """Log an error."""
        self.logger.error(
            "lifecycle_error",
            component=self.component,
            operation=operation,
            error=error,
            **kwargs,
        )
