"""Structured logging utilities with explicit pipeline context, performance timing, and identifier masking."""

import logging
import time
import re
import hashlib
from dataclasses import dataclass
from typing import Any, Optional, Dict
from contextlib import contextmanager

from whisprnet.utils.logging_config import LoggingConfig, get_logger


@dataclass(frozen=True)
class LogContext:
    """Per-event logging context passed explicitly through the pipeline."""
    organization_id: Optional[str] = None
    integration: Optional[str] = None
    event_id: Optional[str] = None

    def with_event(self, event_id: Optional[str]) -> "LogContext":
        return LogContext(self.organization_id, self.integration, event_id)

    def as_fields(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in (
                ("organization_id", self.organization_id),
                ("integration", self.integration),
                ("event_id", self.event_id),
            )
            if value is not None
        }


_EMAIL_PATTERN = re.compile(r'^([^@]{1,2})[^@]*(@.+)$')


def mask_identifier(identifier: Optional[str]) -> Optional[str]:
    """Mask a user id or email address for logging."""
    if not LoggingConfig.LOG_MASK_SENSITIVE or not identifier:
        return identifier

    email = _EMAIL_PATTERN.match(identifier)
    if email:
        return f"{email.group(1)}***{email.group(2)}"

    # Hash long ids and keep a recognisable prefix
    if len(identifier) > 12:
        hashed = hashlib.sha256(identifier.encode()).hexdigest()[:8]
        return f"{identifier[:4]}...{hashed}"
    return identifier


class StructuredLogger:
    """Logger wrapper that merges an explicit LogContext into structured fields."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _get_extra(self, context: Optional[LogContext] = None, **kwargs: Any) -> Dict[str, Any]:
        extra: Dict[str, Any] = {}
        if context is not None:
            extra.update(context.as_fields())
        extra.update(kwargs)
        return extra

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self.logger.debug(message, extra=self._get_extra(context, **kwargs))

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self.logger.info(message, extra=self._get_extra(context, **kwargs))

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs: Any) -> None:
        self.logger.warning(message, extra=self._get_extra(context, **kwargs))

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs: Any
    ) -> None:
        self.logger.error(message, extra=self._get_extra(context, **kwargs), exc_info=exc_info)


def get_structured_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(get_logger(name))


@contextmanager
def log_timing(
    operation_name: str,
    logger: Optional[StructuredLogger] = None,
    context: Optional[LogContext] = None,
    **fields: Any
):
    """Context manager for timing operations."""
    if logger is None:
        logger = get_structured_logger(__name__)

    start_time = time.perf_counter()
    logger.debug(f"Starting {operation_name}", context, operation=operation_name, **fields)

    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            f"Completed {operation_name}",
            context,
            operation=operation_name,
            processing_time_ms=round(elapsed_ms, 2),
            **fields
        )

        if elapsed_ms > LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS:
            logger.warning(
                f"Slow operation detected: {operation_name}",
                context,
                operation=operation_name,
                processing_time_ms=round(elapsed_ms, 2),
                threshold_ms=LoggingConfig.LOG_SLOW_OPERATION_THRESHOLD_MS,
                **fields
            )


def setup_logging() -> logging.Logger:
    """Set up structured logging and return the package logger."""
    LoggingConfig.setup_logging()
    return get_logger("whisprnet")
