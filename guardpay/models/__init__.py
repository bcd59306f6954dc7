"""ORM models package."""
from .api_key import ApiKey, AppRole, UserRole
from .base import Base
from .booking import BOOKING_STATUS_PAID, Booking
from .company import COMPANY_STATUS_PAYOUTS_ENABLED, COMPANY_STATUS_PENDING, Company
from .failed_event import FailedStripeEvent
from .payment import Payment, PaymentStatus
from .payout import UNKNOWN_GUARD_ID, Payout, PayoutStatus

__all__ = [
    "ApiKey",
    "AppRole",
    "Base",
    "BOOKING_STATUS_PAID",
    "Booking",
    "COMPANY_STATUS_PAYOUTS_ENABLED",
    "COMPANY_STATUS_PENDING",
    "Company",
    "FailedStripeEvent",
    "Payment",
    "PaymentStatus",
    "Payout",
    "PayoutStatus",
    "UNKNOWN_GUARD_ID",
    "UserRole",
]
