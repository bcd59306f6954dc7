"""Utility helpers for standardized error responses."""
from typing import Any


def error_response(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    """Return a standardized error payload.

    ``error`` always carries the human readable message so that every error
    body satisfies the ``{"error": str}`` contract expected by callers.
    """

    payload: dict[str, Any] = {"error": message, "code": code}
    if details:
        payload["details"] = details
    return payload


class WebhookVerificationError(Exception):
    """The webhook request could not be authenticated or parsed."""


class MalformedEventError(ValueError):
    """A recognized Stripe event whose object lacks required fields."""


def describe_error(error: BaseException | None) -> str:
    """Return a non-empty, human readable description of ``error``."""

    if error is None:
        return "unknown error"
    return str(error) or type(error).__name__
