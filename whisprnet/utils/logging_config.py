"""Process-wide logging setup for the tagging and fanout workers."""

import os
import logging
import sys
from pythonjsonlogger.json import JsonFormatter

from whisprnet.utils.errors import ConfigurationError

SERVICE_NAME = "whisprnet"

# Fields every pipeline record carries, filled with "-" when a call has no context
CONTEXT_FIELDS = ("organization_id", "integration", "event_id")

_QUIET_LOGGERS = ("httpx", "httpcore", "supabase", "postgrest", "hpack")


class PipelineContextFilter(logging.Filter):
    """Give every record the pipeline context attributes the text format expects."""

    def filter(self, record: logging.LogRecord) -> bool:
        for name in CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, "-")
        return True


class LoggingConfig:
    """Logging settings read from the environment."""

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json").lower()
    LOG_MASK_SENSITIVE = os.environ.get("LOG_MASK_SENSITIVE", "true").lower() == "true"
    LOG_SLOW_OPERATION_THRESHOLD_MS = int(os.environ.get("LOG_SLOW_OPERATION_THRESHOLD_MS", "1000"))

    @classmethod
    def level(cls) -> int:
        level = logging.getLevelName(cls.LOG_LEVEL)
        if not isinstance(level, int):
            raise ConfigurationError(f"LOG_LEVEL must be a logging level name, got '{cls.LOG_LEVEL}'")
        return level

    @classmethod
    def build_formatter(cls) -> logging.Formatter:
        if cls.LOG_FORMAT == "json":
            return JsonFormatter(
                "%(timestamp)s %(levelname)s %(name)s %(message)s",
                timestamp=True,
                rename_fields={"levelname": "level"},
                static_fields={"service": SERVICE_NAME},
            )
        if cls.LOG_FORMAT == "text":
            return logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s "
                "[org=%(organization_id)s integration=%(integration)s event=%(event_id)s] %(message)s"
            )
        raise ConfigurationError(f"LOG_FORMAT must be 'json' or 'text', got '{cls.LOG_FORMAT}'")

    @classmethod
    def setup_logging(cls) -> logging.Handler:
        """Install a single stdout handler on the root logger and return it."""
        level = cls.level()
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(cls.build_formatter())
        handler.addFilter(PipelineContextFilter())

        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(level)
        root_logger.addHandler(handler)

        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
        return handler


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
