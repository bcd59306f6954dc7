"""Bearer token generation and hashing helpers."""
from __future__ import annotations

import hashlib
import hmac
import secrets

from guardpay.config import get_settings


def hash_key(raw: str) -> str:
    """Return an HMAC-SHA256 hash for the provided bearer token."""

    secret = get_settings().SECRET_KEY
    return hmac.new(secret.encode(), raw.encode(), hashlib.sha256).hexdigest()


def gen_key(prefix_len: int = 6) -> tuple[str, str, str]:
    """Generate a user-facing token, its prefix, and the stored hash."""

    prefix = "gp_" + secrets.token_hex(prefix_len)[:prefix_len]
    suffix = secrets.token_urlsafe(32)
    raw = f"{prefix}.{suffix}"
    return raw, prefix, hash_key(raw)
