# backend/logging_config.py

"""
STRUCTURED LOGGING CONFIGURATION

Builds the Django LOGGING dict.

- Development: human-readable console lines
- Production: JSON lines on stdout (log aggregation friendly)

Environment variables:
- LOG_FORMAT: "json" or "console" (default: console in debug, json otherwise)
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO, DEBUG in debug)

Service modules log with extra={...} context; the JSON formatter lifts
those attributes into an "extra" object.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone

APP_LOGGERS = ("accounting", "products", "sales", "purchases", "payments")

_STANDARD_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "exc_info", "exc_text", "stack_info",
    "message", "taskName",
}


def get_logging_config(debug: bool = False) -> dict:
    log_level = os.environ.get("LOG_LEVEL", "DEBUG" if debug else "INFO")
    log_format = os.environ.get("LOG_FORMAT", "console" if debug else "json")

    if log_format == "json":
        formatters = {"json": {"()": "backend.logging_config.JsonFormatter"}}
        formatter = "json"
    else:
        formatters = {
            "verbose": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
        }
        formatter = "verbose"

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
            },
            "null": {"class": "logging.NullHandler"},
        },
        "loggers": {
            "": {"handlers": ["console"], "level": log_level},
            "django": {
                "handlers": ["console"],
                "level": log_level,
                "propagate": False,
            },
            "django.request": {
                "handlers": ["console"],
                "level": log_level if debug else "ERROR",
                "propagate": False,
            },
            "django.db.backends": {
                "handlers": ["null"],
                "level": "INFO",
                "propagate": False,
            },
        },
    }

    for name in APP_LOGGERS:
        config["loggers"][name] = {
            "handlers": ["console"],
            "level": log_level,
            "propagate": False,
        }

    return config


class JsonFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, message, extra."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS
        }
        if extras:
            entry["extra"] = extras

        return json.dumps(entry, default=str)
