"""Logging helpers"""

import logging
import sys
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

from volmount.utils.sanitize import sanitize_sensitive_data

ROOT_LOGGER = 'volmount'
DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
JSON_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'


class SanitizingFilter(logging.Filter):
    """Redacts credentials from log records before they reach a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except Exception:
            return True
        record.msg = sanitize_sensitive_data(message)
        record.args = None
        return True


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the volmount hierarchy."""
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def setup_logging(level: str = 'INFO', log_format: Optional[str] = None,
                  json_logs: bool = False, stream=None) -> logging.Logger:
    """
    Configure the volmount logger hierarchy.

    Args:
        level: Log level name
        log_format: Format string for plain-text output
        json_logs: Emit JSON lines instead of plain text
        stream: Output stream (default: stderr)

    Returns:
        The configured root volmount logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_logs:
        handler.setFormatter(JsonFormatter(JSON_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(log_format or DEFAULT_FORMAT))
    handler.addFilter(SanitizingFilter())

    logger.addHandler(handler)
    logger.propagate = False
    return logger
