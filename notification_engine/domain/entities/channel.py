"""Delivery channels understood by the engine."""

from __future__ import annotations

from enum import Enum


class Channel(str, Enum):
    """Medium used to deliver a notification."""

    EMAIL = "email"
    WHATSAPP = "whatsapp"
    SMS = "sms"
    IN_APP = "in_app"

    @classmethod
    def parse(cls, token: str | None) -> "Channel | None":
        """Return the channel named by ``token`` or ``None`` when unknown."""

        if not token:
            return None
        try:
            return cls(token.strip().lower())
        except ValueError:
            return None


ALL_CHANNELS: tuple[str, ...] = tuple(channel.value for channel in Channel)


__all__ = ["ALL_CHANNELS", "Channel"]
