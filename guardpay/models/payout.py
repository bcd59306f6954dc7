"""Payout model definitions."""
import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum as SqlEnum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

UNKNOWN_GUARD_ID = "unknown"


class PayoutStatus(str, enum.Enum):
    """Possible statuses for a payout."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Payout(Base):
    """A transfer of earnings to a guard or company, keyed by the Stripe payout id."""

    __tablename__ = "payouts"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    guard_id: Mapped[str] = mapped_column(String(64), nullable=False, default=UNKNOWN_GUARD_ID, index=True)
    company_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[PayoutStatus] = mapped_column(
        SqlEnum(PayoutStatus, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=PayoutStatus.PENDING,
    )
    period_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    period_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
