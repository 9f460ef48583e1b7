"""Domain entities describing who a notification is addressed to."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RecipientStrategy(str, Enum):
    """Tokens accepted in ``NotificationRequest.recipient_types``."""

    PROJECT_OWNER = "project_owner"
    ADMINS = "admins"
    WORKFLOW_PARTICIPANTS = "workflow_participants"
    SPECIFIC_USERS = "specific_users"
    MANUAL = "manual"

    @classmethod
    def parse(cls, token: str | None) -> "RecipientStrategy | None":
        """Return the strategy named by ``token`` or ``None`` when unknown."""

        if not token:
            return None
        try:
            return cls(token.strip())
        except ValueError:
            return None


RECIPIENT_TYPE_PROJECT_OWNER = "project_owner"
RECIPIENT_TYPE_ADMIN = "admin"
RECIPIENT_TYPE_WORKFLOW_PARTICIPANT = "workflow_participant"
RECIPIENT_TYPE_SPECIFIC_USER = "specific_user"
RECIPIENT_TYPE_MANUAL = "manual"


def _has_text(value: str | None) -> bool:
    return bool(value and value.strip())


@dataclass
class ResolvedRecipient:
    """Concrete, contactable recipient produced by the resolver."""

    user_id: str | None
    email: str | None
    recipient_type: str | None
    phone: str | None = None
    name: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def has_email(self) -> bool:
        return _has_text(self.email)

    def has_phone(self) -> bool:
        return _has_text(self.phone)

    def is_valid(self) -> bool:
        """Return ``True`` when the recipient can be used for delivery."""

        return (
            _has_text(self.user_id)
            and _has_text(self.recipient_type)
            and (self.has_email() or self.has_phone())
        )

    def display_name(self) -> str:
        return self.name or "Colaborador"

    def __str__(self) -> str:
        return f"Recipient[{self.name}, {self.email}, {self.recipient_type}]"


__all__ = [
    "RECIPIENT_TYPE_ADMIN",
    "RECIPIENT_TYPE_MANUAL",
    "RECIPIENT_TYPE_PROJECT_OWNER",
    "RECIPIENT_TYPE_SPECIFIC_USER",
    "RECIPIENT_TYPE_WORKFLOW_PARTICIPANT",
    "RecipientStrategy",
    "ResolvedRecipient",
]
