"""Logger setup for the ``cipherledger`` namespace."""

import json
import logging
import sys

LOGGER_NAME = "cipherledger"

TEXT_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """One JSON object per line; messages with quotes or newlines stay valid."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(level: int | str = logging.INFO, json_format: bool = False) -> logging.Logger:
    """
    Point the ledger's loggers at stdout.

    Calling it again swaps the handler rather than adding a second one.

    Args:
        level: Logging level (e.g., logging.INFO, "DEBUG")
        json_format: Emit one JSON object per line instead of text

    Returns:
        The ``cipherledger`` root logger.
    """
    if isinstance(level, str):
        level = level.upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT, DATE_FORMAT))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers[:] = [handler]
    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """``cipherledger.<name>``, or the namespace root when name is empty."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)
