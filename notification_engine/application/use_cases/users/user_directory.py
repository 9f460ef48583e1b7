"""Lookup of notification recipients in the local user cache."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import timedelta
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from notification_engine.domain.entities import IdentityUser, UserProfile
from notification_engine.infrastructure.repositories import UserProfileRepository
from notification_engine.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = timedelta(hours=1)


class IdentityProvider(Protocol):
    """Source of truth for user profiles."""

    def get_user(self, user_id: str) -> IdentityUser | None: ...


class UserDirectory:
    """Read cached users and keep them in sync with the identity provider."""

    def __init__(
        self,
        session: Session,
        identity_provider: IdentityProvider | None = None,
        *,
        cache_ttl: timedelta = DEFAULT_CACHE_TTL,
    ) -> None:
        self.repository = UserProfileRepository(session)
        self.session = session
        self.identity_provider = identity_provider
        self.cache_ttl = cache_ttl

    def find_by_user_id(self, user_id: str) -> UserProfile | None:
        return self.repository.get(user_id)

    def find_by_email(self, email: str) -> UserProfile | None:
        return self.repository.get_by_email(email)

    def find_admins(self) -> Sequence[UserProfile]:
        return self.repository.list_admins()

    def get_or_refresh(
        self,
        user_id: str,
        *,
        fallback_email: str | None = None,
        fallback_name: str | None = None,
    ) -> UserProfile | None:
        """Return the cached profile for ``user_id``, refreshing it when stale.

        Missing or stale entries are (re)loaded from the identity provider.
        When the provider has no answer the fallback contact data is stored
        instead. ``None`` is returned only when no email can be determined.
        """

        now = now_in_app_timezone()
        existing = self.repository.get(user_id)
        if existing is not None and not existing.is_stale(now, self.cache_ttl):
            return existing

        identity = self._fetch_identity(user_id)
        if identity is not None:
            profile = UserProfile(
                id=user_id,
                email=identity.email or fallback_email or _attr(existing, "email"),
                name=identity.name or fallback_name or _attr(existing, "name"),
                phone=identity.phone,
                roles=list(identity.roles) or list(_attr(existing, "roles") or []),
                last_sync=now,
                created_at=_attr(existing, "created_at") or now,
            )
        else:
            if existing is None:
                logger.info(
                    "Creating user %s with fallback data: %s <%s>",
                    user_id,
                    fallback_name,
                    fallback_email,
                )
            else:
                logger.warning(
                    "Could not fetch user %s from identity provider, using fallback data",
                    user_id,
                )
            profile = UserProfile(
                id=user_id,
                email=fallback_email or _attr(existing, "email"),
                name=fallback_name or _attr(existing, "name"),
                phone=_attr(existing, "phone"),
                roles=list(_attr(existing, "roles") or []),
                last_sync=now,
                created_at=_attr(existing, "created_at") or now,
            )

        if not profile.email:
            logger.warning("User %s has no email address; not caching it", user_id)
            return existing

        try:
            return self.repository.save(profile)
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.warning("Failed to cache user %s: %s", user_id, exc)
            return profile

    def _fetch_identity(self, user_id: str) -> IdentityUser | None:
        if self.identity_provider is None:
            return None
        return self.identity_provider.get_user(user_id)


def _attr(profile: UserProfile | None, name: str):
    return getattr(profile, name) if profile is not None else None


__all__ = ["DEFAULT_CACHE_TTL", "IdentityProvider", "UserDirectory"]
