"""Aggregate application use cases."""

from .notifications import process_workflow_notification, retry_notification
from .users import UserDirectory

__all__ = [
    "UserDirectory",
    "process_workflow_notification",
    "retry_notification",
]
