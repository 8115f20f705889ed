"""Logging setup for intentpay: one ``intentpay`` logger with per-component children."""

import json
import logging
import sys
from typing import TextIO

LOGGER_NAME = "intentpay"

_TEXT_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, _DATE_FORMAT),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Configure the intentpay logger.

    Calling it again replaces the handler rather than adding a second one.

    Args:
        level: Logging level (e.g. logging.INFO, "DEBUG")
        json_format: Emit JSON lines instead of human-readable text
        stream: Output stream (default: stdout)

    Returns:
        The configured logger
    """
    if isinstance(level, str):
        level = level.upper()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        JsonFormatter() if json_format else logging.Formatter(_TEXT_FORMAT, _DATE_FORMAT)
    )
    logger.addHandler(handler)

    # Applications keep their own root configuration
    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Child logger ``intentpay.<name>``, or the package logger itself."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)
