"""JSON logging configuration for the issuance core and its scripts."""

import logging
import os
from collections.abc import Mapping

from pythonjsonlogger import jsonlogger

LOGGER_NAME = "ca_depot"
LOG_LEVEL_ENV_VAR = "CA_DEPOT_LOG_LEVEL"

ALLOWED_FIELDS = frozenset(
    {
        "timestamp",
        "level",
        "message",
        "exc_info",
        "funcName",
        "lineno",
    }
)


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that keeps timestamp, level, message, exc_info, funcName, lineno."""

    def add_fields(self, log_record, record, message_dict):
        """Override to include only ALLOWED_FIELDS.

        Args:
            log_record: Dict to be logged as JSON
            record: LogRecord object from logging framework
            message_dict: Dict containing message and args
        """
        super().add_fields(log_record, record, message_dict)

        if "levelname" in log_record:
            log_record["level"] = log_record.pop("levelname")

        for key in [key for key in log_record if key not in ALLOWED_FIELDS]:
            log_record.pop(key)


def log_level(environ: Mapping[str, str] | None = None) -> int:
    """Return level named by CA_DEPOT_LOG_LEVEL, INFO if unset or unknown."""
    env = os.environ if environ is None else environ
    level = logging.getLevelName(env.get(LOG_LEVEL_ENV_VAR, "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def _setup_logger() -> logging.Logger:
    """Initialize and configure the package logger.

    Library modules log through logging.getLogger(__name__), which are
    children of this logger and share its handler.

    Returns:
        Configured logger with CustomJsonFormatter
    """
    logger = logging.getLogger(LOGGER_NAME)

    # Prevent duplicate handlers if module reloaded
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    formatter = CustomJsonFormatter(
        fmt="%(timestamp)s %(levelname)s %(funcName)s %(lineno)d %(message)s",
        timestamp=True,
    )
    handler.setFormatter(formatter)

    logger.setLevel(log_level())
    logger.addHandler(handler)
    logger.propagate = False

    return logger


LOGGER = _setup_logger()
