"""Company model (the columns reconciliation reads and writes)."""
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

COMPANY_STATUS_PAYOUTS_ENABLED = "payouts_enabled"
COMPANY_STATUS_PENDING = "pending"


class Company(Base):
    """A security company; linked to its Stripe Connect account."""

    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    stripe_account_id: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)
