"""Utility helpers for reusable functionality."""

from .datetime import (
    days_ago_in_app_timezone,
    from_storage,
    get_app_timezone,
    now_in_app_timezone,
    storage_now,
    to_storage,
)
from .masking import mask_phone

__all__ = [
    "days_ago_in_app_timezone",
    "from_storage",
    "get_app_timezone",
    "mask_phone",
    "now_in_app_timezone",
    "storage_now",
    "to_storage",
]
