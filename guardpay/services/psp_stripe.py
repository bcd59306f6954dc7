"""Stripe SDK wrapper for webhook verification."""
from __future__ import annotations

import json

import stripe
from pydantic import ValidationError

from guardpay.config import Settings
from guardpay.schemas.events import IncomingEvent
from guardpay.utils.errors import WebhookVerificationError


class StripeClient:
    """Wrapper around the Stripe Python SDK to isolate PSP concerns.

    Verification needs only ``STRIPE_WEBHOOK_SECRET``; the API key, when set,
    is attached to the constructed event as Stripe's own client does.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def construct_webhook_event(self, payload: bytes, sig_header: str) -> IncomingEvent:
        """Verify a webhook delivery and parse it into an :class:`IncomingEvent`.

        ``payload`` must be the request body exactly as received; any
        re-serialisation breaks the signature.
        """

        webhook_secret = self.settings.STRIPE_WEBHOOK_SECRET
        if not webhook_secret:
            raise WebhookVerificationError("Stripe webhook secret is not configured.")
        try:
            stripe.Webhook.construct_event(
                payload, sig_header, webhook_secret, api_key=self.settings.STRIPE_SECRET_KEY
            )
        except stripe.SignatureVerificationError as exc:
            raise WebhookVerificationError("Invalid Stripe signature.") from exc
        except ValueError as exc:
            raise WebhookVerificationError("Invalid Stripe webhook payload.") from exc

        try:
            document = json.loads(payload)
            if not isinstance(document, dict):
                raise ValueError("event document must be a JSON object")
            return IncomingEvent.from_payload(document)
        except (ValueError, ValidationError) as exc:
            raise WebhookVerificationError("Invalid Stripe webhook payload.") from exc


__all__ = ["StripeClient"]
