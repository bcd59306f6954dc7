"""Dead-letter storage for Stripe events whose persistence retries ran out."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from guardpay.core.observer import Observer
from guardpay.models.failed_event import FailedStripeEvent
from guardpay.schemas.events import IncomingEvent
from guardpay.utils.errors import describe_error


class DeadLetterRecorder:
    """Writes one ``stripe_failed_events`` row per exhausted incident."""

    def __init__(self, session_factory: sessionmaker[Session], observer: Observer) -> None:
        self._session_factory = session_factory
        self._observer = observer

    def persist(self, event: IncomingEvent, error: BaseException | None) -> None:
        """Record ``event`` and ``error``. Never raises."""

        message = describe_error(error)
        try:
            with self._session_factory.begin() as db:
                db.add(
                    FailedStripeEvent(
                        event_id=event.id,
                        type=event.type,
                        payload=event.payload,
                        error=message,
                    )
                )
        except Exception as persist_exc:  # noqa: BLE001
            self._observer.warning(
                "failed_event.persist.error",
                event_id=event.id,
                error=describe_error(persist_exc),
            )
            return

        self._observer.error(
            "stripe.event.dead_lettered",
            exc=error,
            event_id=event.id,
            event_type=event.type,
            error=message,
        )


def list_failed_events(db: Session, *, limit: int) -> list[FailedStripeEvent]:
    """Return the most recent dead letters, newest first."""

    stmt = (
        select(FailedStripeEvent)
        .order_by(FailedStripeEvent.created_at.desc(), FailedStripeEvent.id.desc())
        .limit(limit)
    )
    return list(db.scalars(stmt).all())


__all__ = ["DeadLetterRecorder", "list_failed_events"]
