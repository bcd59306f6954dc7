"""Health check endpoint."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from sqlalchemy import text

from guardpay.config import get_settings
from guardpay.db import get_engine

router = APIRouter(prefix="/health", tags=["health"])
logger = logging.getLogger(__name__)


def _db_status() -> str:
    """Return 'ok' if the DB is reachable, 'error' otherwise."""

    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return "ok"
    except Exception:  # noqa: BLE001
        logger.exception("DB health check failed")
        return "error"


@router.get("", summary="Health check")
def healthcheck(request: Request) -> dict[str, object]:
    """Return liveness, store reachability and reconciliation counters."""

    settings = get_settings()
    db_status = _db_status()
    services = getattr(request.app.state, "services", None)
    return {
        "ok": True,
        "status": "ok" if db_status == "ok" else "degraded",
        "db_status": db_status,
        "stripe": {
            "api_key_configured": bool(settings.STRIPE_SECRET_KEY),
            "webhook_configured": bool(settings.STRIPE_WEBHOOK_SECRET),
        },
        "reconciliation": services.observer.stats() if services is not None else {},
    }
