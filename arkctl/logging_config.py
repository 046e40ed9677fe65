"""
Logging configuration with structured field rendering
"""

import logging
import logging.config
from typing import Any, Dict


class FieldsFormatter(logging.Formatter):
    """Append structured fields passed via extra={"fields": {...}}."""

    def format(self, record: logging.LogRecord) -> str:
        """Render the record, then its fields as key=value pairs."""
        message = super().format(record)
        fields = getattr(record, "fields", None)
        if fields:
            rendered = " ".join(f"{key}={value}" for key, value in fields.items())
            message = f"{message} {rendered}"
        return message


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Get logging configuration for the arkctl CLI."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": FieldsFormatter,
                "format": "%(asctime)s - %(levelname)s - %(message)s",
            },
            "debug": {
                "()": FieldsFormatter,
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "debug" if level == "DEBUG" else "default",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "arkctl": {
                "handlers": ["default"],
                "level": level,
                "propagate": False,
            },
            "httpx": {
                "handlers": ["default"],
                "level": "WARNING",
                "propagate": False,
            },
        },
        "root": {
            "level": "WARNING",
            "handlers": ["default"],
        },
    }


def configure_logging(level: str = "INFO") -> None:
    logging.config.dictConfig(get_logging_config(level))
