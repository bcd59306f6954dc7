"""Booking model (the columns reconciliation reads and writes)."""
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

BOOKING_STATUS_PAID = "paid"


class Booking(Base):
    """Represents a client booking of one or more guards."""

    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    client_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="requested")
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True, default="MXN")
    total_mxn_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
