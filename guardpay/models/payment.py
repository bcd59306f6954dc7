"""Payment model definitions."""
import enum
import uuid

from sqlalchemy import Enum as SqlEnum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class PaymentStatus(str, enum.Enum):
    """Possible statuses for a payment."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    CANCELED = "canceled"
    FAILED = "failed"
    REFUNDED = "refunded"


class Payment(Base):
    """A client payment for a booking, created by the booking flow.

    Reconciliation only mutates existing rows, matched on ``preauth_id``
    (Stripe PaymentIntent id) or ``charge_id``.
    """

    __tablename__ = "payments"
    __table_args__ = (
        Index("ix_payments_status", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_id: Mapped[str] = mapped_column(ForeignKey("bookings.id"), nullable=False, index=True)
    provider: Mapped[str] = mapped_column(String(32), nullable=False, default="stripe")
    preauth_id: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
    charge_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    status: Mapped[PaymentStatus] = mapped_column(
        SqlEnum(PaymentStatus, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    amount_preauth: Mapped[int | None] = mapped_column(Integer, nullable=True)
    amount_captured: Mapped[int | None] = mapped_column(Integer, nullable=True)
