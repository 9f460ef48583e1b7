"""Timezone handling for stored and presented datetimes.

Rows are written with naive datetimes expressed in the configured
``APP_TIMEZONE``. Everything above the repositories works with aware values.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from notification_engine.config import get_settings

_UTC_OFFSET = re.compile(r"^(?:UTC|GMT)?\s*([+-])(\d{1,2})(?::?(\d{2}))?$", re.IGNORECASE)


@lru_cache(maxsize=1)
def get_app_timezone() -> tzinfo:
    """Return the timezone named by ``APP_TIMEZONE``, UTC when it is unknown.

    Besides IANA names, fixed offsets such as ``UTC-03:00`` or ``+0530`` are
    accepted.
    """

    name = (get_settings().app_timezone or "").strip()
    if not name or name.upper() in ("UTC", "Z"):
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        pass

    match = _UTC_OFFSET.match(name)
    if match is None:
        return timezone.utc
    sign, hours, minutes = match.groups()
    offset = timedelta(hours=int(hours), minutes=int(minutes or 0))
    return timezone(-offset if sign == "-" else offset)


def now_in_app_timezone() -> datetime:
    return datetime.now(tz=get_app_timezone())


def days_ago_in_app_timezone(days: int) -> datetime:
    return now_in_app_timezone() - timedelta(days=days)


def from_storage(value: datetime | None) -> datetime | None:
    """Attach the app timezone to a value read from the database."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=get_app_timezone())
    return value.astimezone(get_app_timezone())


def to_storage(value: datetime | None) -> datetime | None:
    """Return ``value`` as the naive app-local datetime written to the database."""

    localized = from_storage(value)
    if localized is None:
        return None
    return localized.replace(tzinfo=None)


def storage_now() -> datetime:
    return now_in_app_timezone().replace(tzinfo=None)


__all__ = [
    "days_ago_in_app_timezone",
    "from_storage",
    "get_app_timezone",
    "now_in_app_timezone",
    "storage_now",
    "to_storage",
]
