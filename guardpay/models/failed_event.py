"""Dead-letter storage for Stripe events that exhausted their retries."""
from sqlalchemy import Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class FailedStripeEvent(Base):
    """One row per exhausted-retry incident. Append-only."""

    __tablename__ = "stripe_failed_events"
    __table_args__ = (
        Index("ix_stripe_failed_events_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    error: Mapped[str] = mapped_column(Text, nullable=False)
