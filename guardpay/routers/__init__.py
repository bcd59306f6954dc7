"""API routers for the guardpay service."""
from fastapi import APIRouter

from . import admin, health, stripe_webhook


def get_api_router() -> APIRouter:
    """Return the root API router."""

    api_router = APIRouter()
    api_router.include_router(health.router)
    api_router.include_router(stripe_webhook.router)
    api_router.include_router(admin.router)
    return api_router
