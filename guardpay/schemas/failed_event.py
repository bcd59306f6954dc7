"""Dead-letter schemas."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from guardpay.models.failed_event import FailedStripeEvent


class FailedEventRead(BaseModel):
    """A dead letter as operators see it; ``id`` is the Stripe event id."""

    id: str
    type: str
    payload: dict[str, Any]
    error: str
    created_at: datetime

    @classmethod
    def from_record(cls, record: FailedStripeEvent) -> "FailedEventRead":
        # The table's integer key only orders incidents; it is not exposed.
        return cls(
            id=record.event_id,
            type=record.type,
            payload=record.payload,
            error=record.error,
            created_at=record.created_at,
        )


class FailedEventList(BaseModel):
    events: list[FailedEventRead]
