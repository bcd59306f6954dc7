"""Bearer token resolution and role enforcement."""
from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from guardpay.db import get_db
from guardpay.models.api_key import ApiKey, UserRole
from guardpay.services.reconciliation import ReconciliationServices, get_services
from guardpay.utils.apikey import hash_key
from guardpay.utils.errors import error_response
from guardpay.utils.time import utcnow


@dataclass(frozen=True)
class AuthResult:
    user_id: str | None
    roles: tuple[str, ...] = ()


ANONYMOUS = AuthResult(user_id=None)


def _extract_bearer(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None


def find_valid_key(db: Session, raw: str) -> ApiKey | None:
    """Return the active, unexpired key matching ``raw``."""

    key = db.scalars(
        select(ApiKey).where(ApiKey.key_hash == hash_key(raw), ApiKey.is_active.is_(True))
    ).first()
    if key is None:
        return None
    expires_at = key.expires_at
    if expires_at is not None:
        # SQLite hands back naive datetimes.
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=utcnow().tzinfo)
        if expires_at <= utcnow():
            return None
    return key


def validate_bearer_token(db: Session, authorization: str | None) -> AuthResult:
    """Resolve an ``Authorization`` header to a user id and its roles."""

    token = _extract_bearer(authorization)
    if token is None:
        return ANONYMOUS
    key = find_valid_key(db, token)
    if key is None:
        return ANONYMOUS

    roles = db.scalars(select(UserRole.role).where(UserRole.user_id == key.user_id)).all()
    key.last_used_at = utcnow()
    db.commit()
    return AuthResult(user_id=key.user_id, roles=tuple(role.value for role in roles))


def has_any_role(result: AuthResult, allowed: Collection[str]) -> bool:
    return any(role in allowed for role in result.roles)


def get_auth_result(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> AuthResult:
    return validate_bearer_token(db, authorization)


def require_roles(allowed: Collection[str] | None = None) -> Callable[..., AuthResult]:
    """Dependency factory; defaults to the configured admin roles."""

    def _dep(
        auth: AuthResult = Depends(get_auth_result),
        services: ReconciliationServices = Depends(get_services),
    ) -> AuthResult:
        roles = allowed if allowed is not None else services.settings.ADMIN_ALLOWED_ROLES
        if auth.user_id is None or not has_any_role(auth, roles):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=error_response("UNAUTHORIZED", "Unauthorized"),
            )
        return auth

    return _dep


__all__ = [
    "AuthResult",
    "find_valid_key",
    "get_auth_result",
    "has_any_role",
    "require_roles",
    "validate_bearer_token",
]
