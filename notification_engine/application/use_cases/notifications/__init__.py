"""Use cases for dispatching and managing notifications."""

from .cleanup import cleanup_old_notifications
from .dispatch import (
    BatchItemResult,
    BatchResult,
    RecipientSource,
    SimpleNotification,
    deliver_record,
    process_workflow_notification,
    send_batch,
    send_for_channel,
    send_simple,
)
from .queries import (
    MAX_USER_NOTIFICATIONS,
    NotificationFilters,
    delete_notification,
    get_notification,
    get_user_notifications,
    list_notifications,
)
from .resolve_recipients import FallbackAdmin, RecipientResolver, ResolutionCache
from .retry import RETRY_ERROR_PREFIX, retry_notification
from .statistics import get_health, get_statistics

__all__ = [
    "BatchItemResult",
    "BatchResult",
    "FallbackAdmin",
    "MAX_USER_NOTIFICATIONS",
    "NotificationFilters",
    "RETRY_ERROR_PREFIX",
    "RecipientResolver",
    "RecipientSource",
    "ResolutionCache",
    "SimpleNotification",
    "cleanup_old_notifications",
    "delete_notification",
    "deliver_record",
    "get_health",
    "get_notification",
    "get_statistics",
    "get_user_notifications",
    "list_notifications",
    "process_workflow_notification",
    "retry_notification",
    "send_batch",
    "send_for_channel",
    "send_simple",
]
