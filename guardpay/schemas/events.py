"""Stripe webhook event schemas.

``StripeEventKind`` is the closed set of event types reconciliation acts on;
every other type collapses to ``UNKNOWN``. The ``*Object`` models validate the
``data.object`` member of each recognized event.
"""
from __future__ import annotations

import enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StripeEventKind(str, enum.Enum):
    PAYMENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_CANCELED = "payment_intent.canceled"
    PAYMENT_FAILED = "payment_intent.payment_failed"
    CHARGE_REFUNDED = "charge.refunded"
    ACCOUNT_UPDATED = "account.updated"
    PAYOUT_PAID = "payout.paid"
    PAYOUT_FAILED = "payout.failed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, event_type: str) -> "StripeEventKind":
        try:
            return cls(event_type)
        except ValueError:
            return cls.UNKNOWN


class IncomingEvent(BaseModel):
    """A verified webhook delivery. ``payload`` is the full event document."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: str
    payload: dict[str, Any]

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "IncomingEvent":
        return cls(id=payload.get("id"), type=payload.get("type"), payload=dict(payload))

    @property
    def kind(self) -> StripeEventKind:
        return StripeEventKind.parse(self.type)

    @property
    def data_object(self) -> dict[str, Any]:
        data = self.payload.get("data") or {}
        return data.get("object") or {}


class EventHandlingResult(BaseModel):
    handled: bool
    type: str


class _StripeObject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str


class _WithMetadata(_StripeObject):
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return value or {}


class PaymentIntentObject(_WithMetadata):
    amount: int | None = None
    amount_received: int | None = None
    latest_charge: str | None = None

    @field_validator("latest_charge", mode="before")
    @classmethod
    def _charge_id(cls, value: Any) -> Any:
        # Expanded charges arrive as objects.
        if isinstance(value, Mapping):
            return value.get("id")
        return value

    @property
    def captured_amount(self) -> int | None:
        return self.amount_received if self.amount_received is not None else self.amount


class ChargeObject(_StripeObject):
    pass


class AccountObject(_StripeObject):
    payouts_enabled: bool | None = None


class PayoutObject(_WithMetadata):
    amount: int
    status: str | None = None
    arrival_date: int | None = None


__all__ = [
    "AccountObject",
    "ChargeObject",
    "EventHandlingResult",
    "IncomingEvent",
    "PaymentIntentObject",
    "PayoutObject",
    "StripeEventKind",
]
