"""Structured logging configuration."""

import logging
import sys
from typing import Any

import structlog
from pythonjsonlogger import jsonlogger

from campus_rentals.config import get_settings


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


class WorkflowLogger:
    """Logger for approval, return and order transitions."""

    def __init__(self, component: str):
        self.component = component
        self.logger = get_logger(component)

    def log_transition(
        self,
        action: str,
        record_id: str,
        actor_id: str,
        duration_ms: float | None = None,
        **kwargs: Any,
    ) -> None:
        """Log a committed state transition."""
        log_data = {
            "component": self.component,
            "action": action,
            "record_id": record_id,
            "actor_id": actor_id,
        }

        if duration_ms is not None:
            log_data["duration_ms"] = duration_ms

        log_data.update(kwargs)
        self.logger.info("workflow_transition", **log_data)

    def log_retry(
        self,
        action: str,
        record_id: str,
        attempt: int,
        max_attempts: int,
        wait_seconds: float,
        **kwargs: Any,
    ) -> None:
        """Log a transaction conflict that will be retried."""
        self.logger.warning(
            "transaction_retry",
            component=self.component,
            action=action,
            record_id=record_id,
            attempt=attempt,
            max_attempts=max_attempts,
            wait_seconds=wait_seconds,
            **kwargs,
        )

    def log_error(
        self,
        action: str,
        record_id: str,
        error: str,
        **kwargs: Any,
    ) -> None:
        """Log a failed transition."""
        self.logger.error(
            "workflow_error",
            component=self.component,
            action=action,
            record_id=record_id,
            error=error,
            **kwargs,
        )
