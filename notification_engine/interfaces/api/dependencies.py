"""FastAPI dependency utilities."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from functools import lru_cache
from typing import Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from notification_engine.application.use_cases.notifications import (
    FallbackAdmin,
    RecipientResolver,
    ResolutionCache,
)
from notification_engine.application.use_cases.users import IdentityProvider, UserDirectory
from notification_engine.config import get_settings
from notification_engine.infrastructure.channels import (
    ChannelSender,
    WhatsAppWebClient,
    build_channel_senders,
)
from notification_engine.infrastructure.database import get_db
from notification_engine.infrastructure.repositories import ProjectRepository
from notification_engine.infrastructure.security import AuthenticatedUser, authenticate_token

SENDER_ROLES = ("notification-sender", "notification-admin", "system-admin")
VIEWER_ROLES = ("notification-viewer", *SENDER_ROLES)
ADMIN_ROLES = ("admin", "notification-admin")
SUPER_ADMIN_ROLES = ("admin",)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_current_user(token: str) -> AuthenticatedUser:
    """Resolve the authenticated caller for the provided token."""

    try:
        return authenticate_token(token)
    except ValueError as exc:
        raise _unauthorized("Invalid credentials") from exc


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthenticatedUser:
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")
    return resolve_current_user(credentials.credentials)


def require_roles(*roles: str) -> Callable[..., AuthenticatedUser]:
    """Return a dependency accepting callers holding any of ``roles``."""

    def dependency(
        current_user: AuthenticatedUser = Depends(get_current_user),
    ) -> AuthenticatedUser:
        if not current_user.has_any_role(*roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return dependency


require_sender = require_roles(*SENDER_ROLES)
require_viewer = require_roles(*VIEWER_ROLES)
require_admin = require_roles(*ADMIN_ROLES)
require_super_admin = require_roles(*SUPER_ADMIN_ROLES)


def get_identity_provider(request: Request) -> IdentityProvider | None:
    return getattr(request.app.state, "identity_provider", None)


def get_whatsapp_client(request: Request) -> WhatsAppWebClient | None:
    return getattr(request.app.state, "whatsapp_client", None)


def get_channel_senders(request: Request) -> Mapping[str, ChannelSender]:
    senders = getattr(request.app.state, "channel_senders", None)
    if senders is None:
        senders = build_channel_senders()
        request.app.state.channel_senders = senders
    return senders


@lru_cache(maxsize=1)
def get_resolution_cache() -> ResolutionCache:
    """Return the process-wide cache of resolved recipients."""

    return ResolutionCache(get_settings().recipient_cache_ttl_seconds)


def get_recipient_resolver(
    db: Session = Depends(get_db),
    identity_provider: IdentityProvider | None = Depends(get_identity_provider),
    cache: ResolutionCache = Depends(get_resolution_cache),
) -> RecipientResolver:
    settings = get_settings()
    directory = UserDirectory(
        db,
        identity_provider,
        cache_ttl=timedelta(seconds=settings.user_cache_ttl_seconds),
    )
    return RecipientResolver(
        directory,
        ProjectRepository(db),
        fallback_admin=FallbackAdmin(
            user_id=settings.fallback_admin_id,
            email=settings.fallback_admin_email,
            name=settings.fallback_admin_name,
        ),
        cache=cache,
    )


__all__ = [
    "ADMIN_ROLES",
    "SENDER_ROLES",
    "SUPER_ADMIN_ROLES",
    "VIEWER_ROLES",
    "get_channel_senders",
    "get_current_user",
    "get_identity_provider",
    "get_recipient_resolver",
    "get_resolution_cache",
    "get_whatsapp_client",
    "require_admin",
    "require_roles",
    "require_sender",
    "require_super_admin",
    "require_viewer",
    "resolve_current_user",
]
