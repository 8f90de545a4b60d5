"""
Logging configuration.
Console output, either plain text or one JSON object per line.
"""

import logging
import logging.config
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

from pythonjsonlogger import jsonlogger

from config import Settings

# Set by RequestIDMiddleware for the duration of each request
request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class RequestContextFilter(logging.Filter):
    """Copies the current request id onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id.get()
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with timestamp, level and logger name fields"""

    def __init__(self, *args, environment: str = "development", **kwargs):
        super().__init__(*args, **kwargs)
        self.environment = environment

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["environment"] = self.environment
        if getattr(record, "request_id", None):
            log_record["request_id"] = record.request_id


def build_logging_config(settings: Settings) -> dict:
    formatter = "json" if settings.LOG_JSON else "standard"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            },
            "json": {
                "()": CustomJsonFormatter,
                "fmt": "%(timestamp)s %(level)s %(logger)s %(message)s",
                "environment": settings.ENVIRONMENT,
            },
        },
        "filters": {
            "request_context": {"()": RequestContextFilter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "filters": ["request_context"],
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            # SQL echo is controlled by DB_ECHO, keep the engine logger quiet otherwise
            "sqlalchemy.engine": {
                "level": "INFO" if settings.DB_ECHO else "WARNING",
                "propagate": True,
            },
            "uvicorn.access": {"level": "WARNING", "propagate": True},
        },
        "root": {
            "handlers": ["console"],
            "level": settings.LOG_LEVEL.upper(),
        },
    }


def configure_logging(settings: Settings) -> None:
    logging.config.dictConfig(build_logging_config(settings))
