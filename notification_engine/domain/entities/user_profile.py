"""Domain entities for cached identity-provider users and projects."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

ADMIN_ROLES: tuple[str, ...] = ("admin", "notification-admin", "supervisor")


@dataclass
class UserProfile:
    """Local copy of a user known to the identity provider."""

    id: str
    email: str
    name: str | None = None
    phone: str | None = None
    roles: list[str] = field(default_factory=list)
    last_sync: datetime | None = None
    created_at: datetime | None = None

    def is_stale(self, now: datetime, ttl: timedelta) -> bool:
        """Return ``True`` when the profile must be refreshed."""

        if self.last_sync is None:
            return True
        return self.last_sync < now - ttl


@dataclass
class IdentityUser:
    """User representation returned by the identity provider."""

    id: str
    email: str | None
    name: str | None
    phone: str | None
    roles: list[str] = field(default_factory=list)


@dataclass
class ProjectOwner:
    """Ownership information for a project entity."""

    project_id: str
    owner_id: str
    owner_email: str
    owner_name: str | None = None


__all__ = ["ADMIN_ROLES", "IdentityUser", "ProjectOwner", "UserProfile"]
