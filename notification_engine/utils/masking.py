"""Helpers to keep personal data out of log output."""

from __future__ import annotations


def mask_phone(phone: str | None) -> str:
    """Return ``phone`` with everything but the last four digits hidden."""

    if not phone:
        return "null"
    if len(phone) <= 4:
        return "****"
    return "*" * (len(phone) - 4) + phone[-4:]


__all__ = ["mask_phone"]
