"""Process-wide reconciliation services, built once at startup."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from fastapi import Request
from sqlalchemy.orm import Session, sessionmaker

from guardpay.config import Settings
from guardpay.core.observer import Observer
from guardpay.services.dead_letter import DeadLetterRecorder
from guardpay.services.psp_stripe import StripeClient
from guardpay.services.stripe_events import StripeEventDispatcher, StripeEventHandlers


@dataclass
class ReconciliationServices:
    settings: Settings
    observer: Observer
    dead_letters: DeadLetterRecorder
    dispatcher: StripeEventDispatcher
    _stripe_client: StripeClient | None = field(default=None, repr=False)

    def stripe_client(self) -> StripeClient:
        """Return the shared Stripe client, creating it on first use."""

        if self._stripe_client is None:
            self._stripe_client = StripeClient(self.settings)
        return self._stripe_client


def build_services(
    settings: Settings,
    session_factory: sessionmaker[Session],
    observer: Observer | None = None,
    *,
    stripe_client: StripeClient | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> ReconciliationServices:
    observer = observer or Observer()
    dead_letters = DeadLetterRecorder(session_factory, observer)
    handlers = StripeEventHandlers(
        session_factory,
        observer=observer,
        dead_letters=dead_letters,
        max_elapsed=settings.RETRY_MAX_ELAPSED_SECONDS,
        sleep=sleep,
    )
    return ReconciliationServices(
        settings=settings,
        observer=observer,
        dead_letters=dead_letters,
        dispatcher=StripeEventDispatcher(handlers, observer),
        _stripe_client=stripe_client,
    )


def get_services(request: Request) -> ReconciliationServices:
    """FastAPI dependency returning the services stored on ``app.state``."""

    return request.app.state.services


__all__ = ["ReconciliationServices", "build_services", "get_services"]
