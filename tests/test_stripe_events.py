"""Dispatcher and persistence adapter behaviour against the test database."""
from __future__ import annotations

from typing import Any
from uuid import uuid4

import pytest

from guardpay.models import (
    UNKNOWN_GUARD_ID,
    Booking,
    Company,
    FailedStripeEvent,
    Payment,
    PaymentStatus,
    Payout,
    PayoutStatus,
)
from guardpay.schemas.events import IncomingEvent, StripeEventKind
from guardpay.services import stripe_events
from guardpay.services.dead_letter import DeadLetterRecorder
from guardpay.services.stripe_events import (
    ROUTES,
    StripeEventDispatcher,
    StripeEventHandlers,
    ensure_exhaustive,
)
from guardpay.utils.errors import MalformedEventError


def _event(event_type: str, obj: dict[str, Any], event_id: str | None = None) -> IncomingEvent:
    return IncomingEvent.from_payload(
        {
            "id": event_id or f"evt_{uuid4().hex[:12]}",
            "object": "event",
            "type": event_type,
            "data": {"object": obj},
        }
    )


@pytest.fixture
def handlers(session_factory, observer, instant_sleep) -> StripeEventHandlers:
    return StripeEventHandlers(
        session_factory,
        observer=observer,
        dead_letters=DeadLetterRecorder(session_factory, observer),
        sleep=instant_sleep,
    )


@pytest.fixture
def dispatcher(handlers, observer) -> StripeEventDispatcher:
    return StripeEventDispatcher(handlers, observer)


def _fail_updates_for(monkeypatch, handlers: StripeEventHandlers, target: type) -> list[int]:
    """Make every conditional update on ``target`` raise; returns a call log."""

    calls: list[int] = []
    original = handlers._conditional_update

    def _patched(model, column, reference, values):
        if model is not target:
            return original(model, column, reference, values)

        def _op() -> int:
            calls.append(1)
            raise ConnectionError(f"{target.__tablename__} store unavailable")

        return _op

    monkeypatch.setattr(handlers, "_conditional_update", _patched)
    return calls


def test_every_recognized_kind_has_an_adapter():
    ensure_exhaustive(ROUTES)
    assert set(ROUTES) == set(StripeEventKind) - {StripeEventKind.UNKNOWN}


def test_missing_adapter_fails_at_construction(monkeypatch, handlers, observer):
    partial = {kind: name for kind, name in ROUTES.items() if kind is not StripeEventKind.PAYOUT_FAILED}
    monkeypatch.setattr(stripe_events, "ROUTES", partial)

    with pytest.raises(RuntimeError, match="payout.failed"):
        StripeEventDispatcher(handlers, observer)


@pytest.mark.anyio
async def test_payment_succeeded_updates_payment_and_booking(dispatcher, make_payment, db_session):
    payment = make_payment("pi_success")
    event = _event(
        "payment_intent.succeeded",
        {
            "id": "pi_success",
            "object": "payment_intent",
            "amount": 150_000,
            "amount_received": 150_000,
            "latest_charge": "ch_success",
            "metadata": {"booking_id": payment.booking_id},
        },
    )

    result = await dispatcher.dispatch(event)

    assert result.handled is True
    assert result.type == "payment_intent.succeeded"
    stored = db_session.get(Payment, payment.id)
    assert stored.status == PaymentStatus.SUCCEEDED
    assert stored.amount_captured == 150_000
    assert stored.charge_id == "ch_success"
    booking = db_session.get(Booking, payment.booking_id)
    assert booking.status == "paid"
    assert booking.total_mxn_cents == 150_000


@pytest.mark.anyio
async def test_payment_succeeded_falls_back_to_amount_and_expanded_charge(dispatcher, make_payment, db_session):
    payment = make_payment("pi_expanded")
    event = _event(
        "payment_intent.succeeded",
        {"id": "pi_expanded", "amount": 90_000, "latest_charge": {"id": "ch_expanded", "object": "charge"}},
    )

    await dispatcher.dispatch(event)

    stored = db_session.get(Payment, payment.id)
    assert stored.amount_captured == 90_000
    assert stored.charge_id == "ch_expanded"


@pytest.mark.anyio
async def test_payment_succeeded_redelivery_is_idempotent(dispatcher, make_payment, db_session):
    payment = make_payment("pi_twice")
    event = _event(
        "payment_intent.succeeded",
        {
            "id": "pi_twice",
            "amount": 120_000,
            "amount_received": 120_000,
            "latest_charge": "ch_twice",
            "metadata": {"booking_id": payment.booking_id},
        },
        event_id="evt_twice",
    )

    await dispatcher.dispatch(event)
    first = db_session.get(Payment, payment.id)
    snapshot = (first.status, first.amount_captured, first.charge_id)
    db_session.expire_all()

    await dispatcher.dispatch(event)
    second = db_session.get(Payment, payment.id)

    assert (second.status, second.amount_captured, second.charge_id) == snapshot
    assert second.amount_captured == 120_000


@pytest.mark.anyio
async def test_booking_sync_failure_does_not_fail_payment(
    monkeypatch, handlers, dispatcher, observer, make_payment, db_session
):
    payment = make_payment("pi_booking_down")
    calls = _fail_updates_for(monkeypatch, handlers, Booking)
    event = _event(
        "payment_intent.succeeded",
        {"id": "pi_booking_down", "amount": 50_000, "metadata": {"booking_id": payment.booking_id}},
    )

    result = await dispatcher.dispatch(event)

    assert result.handled is True
    assert len(calls) == stripe_events.SYNC_ATTEMPTS
    assert db_session.get(Payment, payment.id).status == PaymentStatus.SUCCEEDED
    assert db_session.get(Booking, payment.booking_id).status == "requested"
    assert "booking.update.failed" in observer.events("error")
    # Booking sync is best-effort; it is not dead-lettered.
    assert db_session.query(FailedStripeEvent).count() == 0


@pytest.mark.anyio
async def test_payment_update_exhaustion_dead_letters_and_raises(
    monkeypatch, handlers, dispatcher, make_payment, db_session
):
    make_payment("pi_store_down")
    calls = _fail_updates_for(monkeypatch, handlers, Payment)
    event = _event("payment_intent.canceled", {"id": "pi_store_down"}, event_id="evt_store_down")

    with pytest.raises(ConnectionError):
        await dispatcher.dispatch(event)

    assert len(calls) == stripe_events.PAYMENT_ATTEMPTS
    row = db_session.query(FailedStripeEvent).one()
    assert row.event_id == "evt_store_down"
    assert row.type == "payment_intent.canceled"
    assert row.error == "payments store unavailable"


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("event_type", "expected"),
    [
        ("payment_intent.canceled", PaymentStatus.CANCELED),
        ("payment_intent.payment_failed", PaymentStatus.FAILED),
    ],
)
async def test_payment_terminal_statuses(dispatcher, make_payment, db_session, event_type, expected):
    payment = make_payment(f"pi_{expected.value}")

    await dispatcher.dispatch(_event(event_type, {"id": f"pi_{expected.value}"}))

    assert db_session.get(Payment, payment.id).status == expected


@pytest.mark.anyio
async def test_charge_refunded_matches_on_charge_id(dispatcher, make_payment, db_session):
    payment = make_payment("pi_refund", charge_id="ch_refund")

    await dispatcher.dispatch(_event("charge.refunded", {"id": "ch_refund", "object": "charge"}))

    assert db_session.get(Payment, payment.id).status == PaymentStatus.REFUNDED


@pytest.mark.anyio
async def test_unmatched_reference_is_counted_not_raised(dispatcher, observer):
    result = await dispatcher.dispatch(_event("payment_intent.payment_failed", {"id": "pi_nowhere"}))

    assert result.handled is True
    assert observer.stats()["reconciliation.unmatched"] == 1


@pytest.mark.anyio
async def test_unknown_booking_id_is_counted_as_unmatched(dispatcher, observer, make_payment, db_session):
    payment = make_payment("pi_lost_booking")
    event = _event(
        "payment_intent.succeeded",
        {"id": "pi_lost_booking", "amount": 40_000, "metadata": {"booking_id": "booking-that-does-not-exist"}},
    )

    result = await dispatcher.dispatch(event)

    assert result.handled is True
    assert db_session.get(Payment, payment.id).status == PaymentStatus.SUCCEEDED
    assert observer.stats()["reconciliation.unmatched"] == 1
    unmatched = [fields for level, name, fields in observer.records if name == "reconciliation.unmatched"]
    assert unmatched == [{"label": "booking.update.paid", "reference": "booking-that-does-not-exist"}]


@pytest.mark.anyio
@pytest.mark.parametrize(("payouts_enabled", "expected"), [(True, "payouts_enabled"), (False, "pending")])
async def test_account_updated_syncs_company_status(dispatcher, db_session, payouts_enabled, expected):
    company = Company(id=str(uuid4()), name="Escudo Norte", stripe_account_id=f"acct_{expected}")
    db_session.add(company)
    db_session.commit()

    await dispatcher.dispatch(
        _event("account.updated", {"id": f"acct_{expected}", "object": "account", "payouts_enabled": payouts_enabled})
    )

    db_session.expire_all()
    assert db_session.get(Company, company.id).status == expected


@pytest.mark.anyio
async def test_account_updated_for_unlinked_account_is_logged(dispatcher, observer):
    result = await dispatcher.dispatch(_event("account.updated", {"id": "acct_unlinked", "payouts_enabled": True}))

    assert result.handled is True
    assert "account.updated.unmapped" in observer.events("info")


@pytest.mark.anyio
async def test_payout_paid_upserts_row(dispatcher, db_session):
    obj = {
        "id": "po_paid",
        "object": "payout",
        "amount": 80_000,
        "status": "paid",
        "arrival_date": 1_767_225_600,
        "metadata": {"guard_id": "guard-7", "company_id": "company-3"},
    }

    await dispatcher.dispatch(_event("payout.paid", obj))
    await dispatcher.dispatch(_event("payout.paid", obj))

    rows = db_session.query(Payout).all()
    assert len(rows) == 1
    payout = rows[0]
    assert payout.id == "po_paid"
    assert payout.guard_id == "guard-7"
    assert payout.company_id == "company-3"
    assert payout.amount == 80_000
    assert payout.status == PayoutStatus.PAID
    assert payout.period_start is not None
    assert payout.period_start == payout.period_end


@pytest.mark.anyio
async def test_payout_failed_without_guard_uses_placeholder(dispatcher, observer, db_session):
    await dispatcher.dispatch(_event("payout.failed", {"id": "po_failed", "amount": 12_000, "status": "failed"}))

    payout = db_session.get(Payout, "po_failed")
    assert payout.guard_id == UNKNOWN_GUARD_ID
    assert payout.status == PayoutStatus.FAILED
    assert payout.company_id is None
    assert "payout.guard_id.missing" in observer.events("warning")


@pytest.mark.anyio
async def test_payout_status_outside_known_set_uses_event_status(dispatcher, db_session):
    await dispatcher.dispatch(_event("payout.paid", {"id": "po_transit", "amount": 1_000, "status": "in_transit"}))

    assert db_session.get(Payout, "po_transit").status == PayoutStatus.PAID


@pytest.mark.anyio
async def test_unknown_event_type_is_not_persisted(observer, instant_sleep):
    class ExplodingFactory:
        def begin(self):
            raise AssertionError("no persistence expected")

    handlers = StripeEventHandlers(
        ExplodingFactory(),
        observer=observer,
        dead_letters=DeadLetterRecorder(ExplodingFactory(), observer),
        sleep=instant_sleep,
    )
    dispatcher = StripeEventDispatcher(handlers, observer)

    result = await dispatcher.dispatch(_event("some.new.event", {"id": "obj_1"}))

    assert result.handled is False
    assert result.type == "some.new.event"
    assert "stripe.event.unhandled" in observer.events("info")


@pytest.mark.anyio
async def test_malformed_recognized_event_is_dead_lettered(dispatcher, db_session):
    with pytest.raises(MalformedEventError):
        await dispatcher.dispatch(_event("payout.paid", {"id": "po_no_amount"}, event_id="evt_malformed"))

    row = db_session.query(FailedStripeEvent).one()
    assert row.event_id == "evt_malformed"
    assert "payout.paid" in row.error
    assert db_session.query(Payout).count() == 0
