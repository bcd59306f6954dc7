"""JSON logging for the guardpay service."""
from __future__ import annotations

import logging

from pythonjsonlogger import jsonlogger

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Send every record to stderr as one JSON object per line.

    Fields passed through ``extra=`` become top-level JSON keys.
    """

    handler = logging.StreamHandler()
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT))

    root = logging.getLogger()
    # Replaces handlers from earlier calls (reloads, test runs).
    root.handlers = [handler]
    root.setLevel(level.upper())


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["LOG_FORMAT", "get_logger", "setup_logging"]
