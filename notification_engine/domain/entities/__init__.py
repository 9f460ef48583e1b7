"""Domain entities exposed by the application."""

from .channel import ALL_CHANNELS, Channel
from .delivery_record import TERMINAL_STATUSES, DeliveryRecord, DeliveryStatus
from .notification_request import NotificationRequest
from .recipient import (
    RECIPIENT_TYPE_ADMIN,
    RECIPIENT_TYPE_MANUAL,
    RECIPIENT_TYPE_PROJECT_OWNER,
    RECIPIENT_TYPE_SPECIFIC_USER,
    RECIPIENT_TYPE_WORKFLOW_PARTICIPANT,
    RecipientStrategy,
    ResolvedRecipient,
)
from .snapshot import EventSnapshot, PayloadSnapshot, RecipientSnapshot
from .user_profile import ADMIN_ROLES, IdentityUser, ProjectOwner, UserProfile

__all__ = [
    "ADMIN_ROLES",
    "ALL_CHANNELS",
    "Channel",
    "DeliveryRecord",
    "DeliveryStatus",
    "EventSnapshot",
    "IdentityUser",
    "NotificationRequest",
    "PayloadSnapshot",
    "ProjectOwner",
    "RECIPIENT_TYPE_ADMIN",
    "RECIPIENT_TYPE_MANUAL",
    "RECIPIENT_TYPE_PROJECT_OWNER",
    "RECIPIENT_TYPE_SPECIFIC_USER",
    "RECIPIENT_TYPE_WORKFLOW_PARTICIPANT",
    "RecipientSnapshot",
    "RecipientStrategy",
    "ResolvedRecipient",
    "TERMINAL_STATUSES",
    "UserProfile",
]
