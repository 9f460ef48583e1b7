"""Bearer token verification for identity-provider issued JWTs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from jose import JWTError, jwt

from notification_engine.config import Settings, get_settings

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
NOTIFICATION_ADMIN_ROLE = "notification-admin"


@dataclass(frozen=True)
class AuthenticatedUser:
    """Caller identity extracted from a verified access token."""

    user_id: str
    username: str
    email: str | None = None
    name: str | None = None
    roles: frozenset[str] = field(default_factory=frozenset)

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, *roles: str) -> bool:
        return any(self.has_role(role) for role in roles)

    def is_admin(self) -> bool:
        return self.has_any_role(NOTIFICATION_ADMIN_ROLE, ADMIN_ROLE)


def decode_access_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    settings = settings or get_settings()
    if not settings.auth_jwt_key:
        raise ValueError("Token verification key is not configured")
    try:
        return jwt.decode(
            token,
            settings.auth_jwt_key,
            algorithms=settings.auth_jwt_algorithms,
            audience=settings.auth_jwt_audience,
            options={"verify_aud": settings.auth_jwt_audience is not None},
        )
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc


def extract_roles(claims: dict[str, Any]) -> frozenset[str]:
    """Collect realm roles and top-level ``roles`` from token claims."""

    roles: set[str] = set()
    realm_access = claims.get("realm_access")
    if isinstance(realm_access, dict) and isinstance(realm_access.get("roles"), list):
        roles.update(str(role) for role in realm_access["roles"])
    if isinstance(claims.get("roles"), list):
        roles.update(str(role) for role in claims["roles"])
    return frozenset(roles)


def user_from_claims(claims: dict[str, Any]) -> AuthenticatedUser:
    user_id = claims.get("sub")
    if not user_id:
        raise ValueError("Token has no subject")
    email = claims.get("email")
    return AuthenticatedUser(
        user_id=str(user_id),
        username=str(claims.get("preferred_username") or email or user_id),
        email=email,
        name=claims.get("name"),
        roles=extract_roles(claims),
    )


def authenticate_token(token: str, settings: Settings | None = None) -> AuthenticatedUser:
    """Verify ``token`` and return the caller it identifies.

    Raises ``ValueError`` when the token is invalid.
    """

    return user_from_claims(decode_access_token(token, settings))


__all__ = [
    "AuthenticatedUser",
    "authenticate_token",
    "decode_access_token",
    "extract_roles",
    "user_from_claims",
]
