"""Stripe webhook ingress."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status

from guardpay.schemas.webhook import WebhookAck
from guardpay.services.reconciliation import ReconciliationServices, get_services
from guardpay.utils.errors import WebhookVerificationError, error_response

router = APIRouter(prefix="/stripe", tags=["stripe"])


# No body parameter is declared: the signature covers the raw bytes, so the
# body must reach the verifier exactly as Stripe sent it.
@router.post("/webhook", response_model=WebhookAck, status_code=status.HTTP_200_OK)
async def stripe_webhook(
    request: Request,
    services: ReconciliationServices = Depends(get_services),
) -> WebhookAck:
    observer = services.observer
    sig_header = request.headers.get("Stripe-Signature")
    if not sig_header or not services.settings.STRIPE_WEBHOOK_SECRET:
        observer.warning(
            "stripe.webhook.rejected",
            reason="missing_signature" if not sig_header else "missing_secret",
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error_response("STRIPE_SIGNATURE_MISSING", "Missing signature or webhook secret."),
        )

    payload = await request.body()
    try:
        event = services.stripe_client().construct_webhook_event(payload, sig_header)
    except WebhookVerificationError as exc:
        observer.warning("stripe.webhook.rejected", reason=str(exc))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error_response("STRIPE_SIGNATURE_INVALID", f"Webhook Error: {exc}"),
        )

    observer.info("stripe.webhook.received", event_type=event.type, event_id=event.id)
    try:
        result = await services.dispatcher.dispatch(event)
    except Exception as exc:  # noqa: BLE001
        observer.error(
            "stripe.webhook.handler_failed",
            exc=exc,
            event_type=event.type,
            event_id=event.id,
            error=str(exc),
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_response("STRIPE_HANDLER_FAILED", "Webhook handler failed."),
        )

    return WebhookAck(received=True, handled=result.handled, type=result.type)


__all__ = ["router"]
