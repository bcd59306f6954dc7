"""Persistence adapters and dispatch for Stripe webhook events.

Every adapter writes absolute values keyed by a Stripe reference, so a
redelivered event converges on the same rows. Events are not deduplicated by
id; a new adapter must keep that property or the dispatcher needs an
event-id ledger first.
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Mapping, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import update
from sqlalchemy.orm import Session, sessionmaker

from guardpay.core.observer import Observer
from guardpay.models import (
    BOOKING_STATUS_PAID,
    COMPANY_STATUS_PAYOUTS_ENABLED,
    COMPANY_STATUS_PENDING,
    UNKNOWN_GUARD_ID,
    Booking,
    Company,
    Payment,
    PaymentStatus,
    Payout,
    PayoutStatus,
)
from guardpay.schemas.events import (
    AccountObject,
    ChargeObject,
    EventHandlingResult,
    IncomingEvent,
    PaymentIntentObject,
    PayoutObject,
    StripeEventKind,
)
from guardpay.services.dead_letter import DeadLetterRecorder
from guardpay.services.retry import DEFAULT_MAX_ELAPSED_SECONDS, with_retry
from guardpay.utils.errors import MalformedEventError
from guardpay.utils.time import from_unix_timestamp

ObjectT = TypeVar("ObjectT", bound=BaseModel)
EventHandler = Callable[[IncomingEvent], Awaitable[None]]

PAYMENT_ATTEMPTS, PAYMENT_BASE_DELAY = 3, 0.15
SYNC_ATTEMPTS, SYNC_BASE_DELAY = 3, 0.2

ROUTES: dict[StripeEventKind, str] = {
    StripeEventKind.PAYMENT_SUCCEEDED: "record_payment_succeeded",
    StripeEventKind.PAYMENT_CANCELED: "record_payment_canceled",
    StripeEventKind.PAYMENT_FAILED: "record_payment_failed",
    StripeEventKind.CHARGE_REFUNDED: "record_charge_refunded",
    StripeEventKind.ACCOUNT_UPDATED: "sync_account",
    StripeEventKind.PAYOUT_PAID: "record_payout_paid",
    StripeEventKind.PAYOUT_FAILED: "record_payout_failed",
}


def ensure_exhaustive(routes: Mapping[StripeEventKind, Any]) -> None:
    """Fail when a recognized event kind has no adapter."""

    missing = set(StripeEventKind) - {StripeEventKind.UNKNOWN} - set(routes)
    if missing:
        names = sorted(kind.value for kind in missing)
        raise RuntimeError(f"No adapter registered for Stripe event kinds: {names}")


def _payout_status(reported: str | None, fallback: PayoutStatus) -> PayoutStatus:
    if not reported:
        return fallback
    try:
        return PayoutStatus(reported)
    except ValueError:
        return fallback


class StripeEventHandlers:
    """One persistence adapter per recognized Stripe event kind."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        observer: Observer,
        dead_letters: DeadLetterRecorder,
        max_elapsed: float = DEFAULT_MAX_ELAPSED_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._session_factory = session_factory
        self._observer = observer
        self._dead_letters = dead_letters
        self._max_elapsed = max_elapsed
        self._sleep = sleep

    async def _retry(
        self,
        label: str,
        operation: Callable[[], Any],
        attempts: int,
        base_delay: float,
        event: IncomingEvent | None,
    ) -> Any:
        return await with_retry(
            label,
            operation,
            attempts,
            base_delay,
            event,
            max_elapsed=self._max_elapsed,
            dead_letters=self._dead_letters,
            observer=self._observer,
            sleep=self._sleep,
        )

    def _parse(self, model: type[ObjectT], event: IncomingEvent) -> ObjectT:
        try:
            return model.model_validate(event.data_object)
        except ValidationError as exc:
            error = MalformedEventError(
                f"{event.type} object failed validation ({exc.error_count()} error(s))"
            )
            self._dead_letters.persist(event, error)
            raise error from exc

    def _conditional_update(self, model: Any, column: Any, reference: str, values: dict[str, Any]) -> Callable[[], int]:
        def _op() -> int:
            with self._session_factory.begin() as db:
                stmt = (
                    update(model)
                    .where(column == reference)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                return db.execute(stmt).rowcount

        return _op

    def _note_unmatched(self, label: str, rowcount: int, reference: str) -> None:
        if not rowcount:
            self._observer.info("reconciliation.unmatched", label=label, reference=reference)
            self._observer.increment("reconciliation.unmatched")

    async def _set_payment_status(
        self, label: str, event: IncomingEvent, column: Any, reference: str, values: dict[str, Any]
    ) -> None:
        rowcount = await self._retry(
            label,
            self._conditional_update(Payment, column, reference, values),
            PAYMENT_ATTEMPTS,
            PAYMENT_BASE_DELAY,
            event,
        )
        self._note_unmatched(label, rowcount, reference)

    async def record_payment_succeeded(self, event: IncomingEvent) -> None:
        intent = self._parse(PaymentIntentObject, event)
        await self._set_payment_status(
            "payment_intent.succeeded.update",
            event,
            Payment.preauth_id,
            intent.id,
            {
                "status": PaymentStatus.SUCCEEDED,
                "amount_captured": intent.captured_amount,
                "charge_id": intent.latest_charge,
            },
        )

        booking_id = intent.metadata.get("booking_id")
        if not booking_id:
            return
        values: dict[str, Any] = {"status": BOOKING_STATUS_PAID}
        if intent.amount is not None:
            values["total_mxn_cents"] = intent.amount
        # Payment state is authoritative; the booking is synced best-effort.
        try:
            rowcount = await self._retry(
                "booking.update.paid",
                self._conditional_update(Booking, Booking.id, str(booking_id), values),
                SYNC_ATTEMPTS,
                SYNC_BASE_DELAY,
                None,
            )
        except Exception as exc:  # noqa: BLE001
            self._observer.error(
                "booking.update.failed",
                exc=exc,
                booking_id=str(booking_id),
                payment_intent=intent.id,
                error=str(exc),
            )
            return
        self._note_unmatched("booking.update.paid", rowcount, str(booking_id))

    async def record_payment_canceled(self, event: IncomingEvent) -> None:
        intent = self._parse(PaymentIntentObject, event)
        await self._set_payment_status(
            "payment_intent.canceled.update",
            event,
            Payment.preauth_id,
            intent.id,
            {"status": PaymentStatus.CANCELED},
        )

    async def record_payment_failed(self, event: IncomingEvent) -> None:
        intent = self._parse(PaymentIntentObject, event)
        await self._set_payment_status(
            "payment_intent.payment_failed.update",
            event,
            Payment.preauth_id,
            intent.id,
            {"status": PaymentStatus.FAILED},
        )

    async def record_charge_refunded(self, event: IncomingEvent) -> None:
        charge = self._parse(ChargeObject, event)
        await self._set_payment_status(
            "charge.refunded.update",
            event,
            Payment.charge_id,
            charge.id,
            {"status": PaymentStatus.REFUNDED},
        )

    async def sync_account(self, event: IncomingEvent) -> None:
        account = self._parse(AccountObject, event)
        status = COMPANY_STATUS_PAYOUTS_ENABLED if account.payouts_enabled else COMPANY_STATUS_PENDING
        rowcount = await self._retry(
            "account.updated.company",
            self._conditional_update(Company, Company.stripe_account_id, account.id, {"status": status}),
            SYNC_ATTEMPTS,
            SYNC_BASE_DELAY,
            event,
        )
        if rowcount:
            self._observer.info("account.updated.mapped", account=account.id, status=status)
        else:
            # Connect accounts can exist before a company links them.
            self._observer.info("account.updated.unmapped", account=account.id)
            self._observer.increment("account.updated.unmapped")

    def _upsert_payout(self, payout: PayoutObject, status: PayoutStatus) -> Callable[[], None]:
        guard_id = payout.metadata.get("guard_id")
        if not guard_id:
            self._observer.warning("payout.guard_id.missing", payout_id=payout.id)
        arrival = from_unix_timestamp(payout.arrival_date)
        row = {
            "id": payout.id,
            "guard_id": str(guard_id) if guard_id else UNKNOWN_GUARD_ID,
            "company_id": str(payout.metadata["company_id"]) if payout.metadata.get("company_id") else None,
            "amount": payout.amount,
            "status": status,
            "period_start": arrival,
            "period_end": arrival,
        }

        def _op() -> None:
            with self._session_factory.begin() as db:
                db.merge(Payout(**row))

        return _op

    async def record_payout_paid(self, event: IncomingEvent) -> None:
        payout = self._parse(PayoutObject, event)
        status = _payout_status(payout.status, PayoutStatus.PAID)
        await self._retry(
            "payout.paid.upsert", self._upsert_payout(payout, status), PAYMENT_ATTEMPTS, PAYMENT_BASE_DELAY, event
        )

    async def record_payout_failed(self, event: IncomingEvent) -> None:
        payout = self._parse(PayoutObject, event)
        status = _payout_status(payout.status, PayoutStatus.FAILED)
        await self._retry(
            "payout.failed.upsert", self._upsert_payout(payout, status), PAYMENT_ATTEMPTS, PAYMENT_BASE_DELAY, event
        )


class StripeEventDispatcher:
    """Routes each verified event to its adapter."""

    def __init__(self, handlers: StripeEventHandlers, observer: Observer) -> None:
        ensure_exhaustive(ROUTES)
        self._observer = observer
        self._routes: dict[StripeEventKind, EventHandler] = {
            kind: getattr(handlers, name) for kind, name in ROUTES.items()
        }

    async def dispatch(self, event: IncomingEvent) -> EventHandlingResult:
        handler = self._routes.get(event.kind)
        if handler is None:
            self._observer.info("stripe.event.unhandled", event_type=event.type, event_id=event.id)
            self._observer.increment("stripe.event.unhandled")
            return EventHandlingResult(handled=False, type=event.type)

        await handler(event)
        self._observer.increment("stripe.event.handled")
        return EventHandlingResult(handled=True, type=event.type)


__all__ = [
    "ROUTES",
    "StripeEventDispatcher",
    "StripeEventHandlers",
    "ensure_exhaustive",
]
