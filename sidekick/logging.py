"""Structured logging for the advisor core.

Loggers emit ``key=value`` lines so fields stay greppable. Components take a
logger in their constructor and fall back to ``get_logger(__name__)``.
"""

import logging
import sys
from typing import Any


class StructuredFormatter(logging.Formatter):
    """key=value formatter; extra fields come from ``log_with_context``."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        parts = [f"{k}={v}" for k, v in log_data.items()]
        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger with a stdout handler using StructuredFormatter
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

        try:
            from sidekick.settings import get_settings

            logger.setLevel(get_settings().LOG_LEVEL.upper())
        except Exception:
            # settings may be unreadable (bad .env); logging must still work
            logger.setLevel(logging.INFO)

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with additional key/value fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Fields rendered as key=value after the message
    """
    logger.log(level, msg, extra={"extra_data": kwargs})
