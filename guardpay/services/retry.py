"""Bounded retry with exponential backoff for persistence operations."""
from __future__ import annotations

import asyncio
import inspect
import random
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

from guardpay.core.observer import Observer

if TYPE_CHECKING:  # pragma: no cover - hints only
    from guardpay.schemas.events import IncomingEvent
    from guardpay.services.dead_letter import DeadLetterRecorder

T = TypeVar("T")

# 30 % spread centred on the nominal delay, i.e. ±15 %.
JITTER_SPREAD = 0.3
DEFAULT_MAX_ELAPSED_SECONDS = 10.0

_fallback_observer = Observer()


def backoff_delay(
    attempt: int,
    base_delay: float,
    *,
    jitter: bool = True,
    rng: Callable[[], float] = random.random,
) -> float:
    """Return the delay to wait after failed ``attempt`` (1-based)."""

    delay = base_delay * (2 ** (attempt - 1))
    if jitter:
        spread = delay * JITTER_SPREAD
        delay = delay - spread / 2 + rng() * spread
    return delay


async def with_retry(
    label: str,
    operation: Callable[[], T | Awaitable[T]],
    attempts: int = 3,
    base_delay: float = 0.1,
    event: IncomingEvent | None = None,
    *,
    jitter: bool = True,
    max_elapsed: float = DEFAULT_MAX_ELAPSED_SECONDS,
    dead_letters: DeadLetterRecorder | None = None,
    observer: Observer | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Run ``operation`` up to ``attempts`` times with exponential backoff.

    ``operation`` may be a plain callable or return an awaitable. Delays are in
    seconds. Retries stop early once ``max_elapsed`` seconds have passed, and a
    backoff delay never sleeps past that budget.

    When every attempt fails, ``event`` (if given) is handed to
    ``dead_letters`` together with the last error, which is then re-raised.
    """

    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    observer = observer or _fallback_observer
    last_error: Exception | None = None
    start = time.monotonic()

    for attempt in range(1, attempts + 1):
        try:
            result = operation()
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            last_error = exc
            observer.warning("retry.failure", label=label, attempt=attempt, error=str(exc))
            if attempt == attempts:
                break
            elapsed = time.monotonic() - start
            if elapsed >= max_elapsed:
                observer.warning(
                    "retry.aborted.max_elapsed",
                    label=label,
                    elapsed=round(elapsed, 3),
                    max_elapsed=max_elapsed,
                )
                break
            delay = min(backoff_delay(attempt, base_delay, jitter=jitter), max_elapsed - elapsed)
            await sleep(max(0.0, delay))
            continue

        if attempt > 1:
            observer.info("retry.success", label=label, attempt=attempt)
            observer.increment("retry.recovered")
        return result

    assert last_error is not None
    observer.increment("retry.exhausted")
    if event is not None and dead_letters is not None:
        dead_letters.persist(event, last_error)
    raise last_error


__all__ = ["JITTER_SPREAD", "DEFAULT_MAX_ELAPSED_SECONDS", "backoff_delay", "with_retry"]
