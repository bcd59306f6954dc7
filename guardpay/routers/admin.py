"""Operator endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from guardpay.db import get_db
from guardpay.schemas.failed_event import FailedEventList, FailedEventRead
from guardpay.security import AuthResult, require_roles
from guardpay.services.dead_letter import list_failed_events
from guardpay.services.reconciliation import ReconciliationServices, get_services
from guardpay.utils.errors import error_response

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stripe-failed-events", response_model=FailedEventList)
def list_stripe_failed_events(
    auth: AuthResult = Depends(require_roles()),
    db: Session = Depends(get_db),
    services: ReconciliationServices = Depends(get_services),
) -> FailedEventList:
    """Return the most recent dead-lettered Stripe events, newest first."""

    try:
        rows = list_failed_events(db, limit=services.settings.FAILED_EVENTS_PAGE_SIZE)
    except Exception as exc:  # noqa: BLE001
        services.observer.error("admin.failed_events.fetch.error", exc=exc, user_id=auth.user_id, error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_response("FAILED_EVENTS_UNAVAILABLE", "Failed to load failed events"),
        )
    return FailedEventList(events=[FailedEventRead.from_record(row) for row in rows])
