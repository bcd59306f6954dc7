"""Schema package exports."""
from .events import (
    AccountObject,
    ChargeObject,
    EventHandlingResult,
    IncomingEvent,
    PaymentIntentObject,
    PayoutObject,
    StripeEventKind,
)
from .failed_event import FailedEventList, FailedEventRead
from .webhook import WebhookAck
