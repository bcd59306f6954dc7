"""Observation capability shared by the reconciliation pipeline.

An :class:`Observer` bundles the three side channels the pipeline reports to:
structured logs, in-process counters and Sentry error reporting. One instance
is built at startup and passed to every component, so tests can swap in a
recording subclass and assert on what was reported.
"""
from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import Any

import sentry_sdk

from guardpay.core.logging import get_logger


class Observer:
    """Log, count and report reconciliation events."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or get_logger("guardpay.reconciliation")
        self._counters: Counter[str] = Counter()
        self._lock = threading.Lock()

    def increment(self, metric: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[metric] += amount

    def stats(self) -> dict[str, int]:
        """Return a snapshot of the counters."""

        with self._lock:
            return dict(self._counters)

    def debug(self, event: str, **fields: Any) -> None:
        self._logger.debug(event, extra=fields)

    def info(self, event: str, **fields: Any) -> None:
        self._logger.info(event, extra=fields)

    def warning(self, event: str, **fields: Any) -> None:
        self.increment(event)
        self._logger.warning(event, extra=fields)

    def error(self, event: str, exc: BaseException | None = None, **fields: Any) -> None:
        """Log at error level and forward to Sentry (no-op when Sentry is off)."""

        self.increment(event)
        self._logger.error(event, extra=fields)
        with sentry_sdk.new_scope() as scope:
            scope.set_context("reconciliation", {"event": event, **fields})
            if exc is not None:
                sentry_sdk.capture_exception(exc)
            else:
                sentry_sdk.capture_message(event, level="error")


__all__ = ["Observer"]
