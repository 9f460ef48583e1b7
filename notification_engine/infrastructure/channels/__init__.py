"""Delivery channel implementations."""

from __future__ import annotations

from collections.abc import Mapping

from notification_engine.config import Settings, get_settings
from notification_engine.infrastructure.templates import TemplateRenderer

from .base import ChannelSender
from .email import EmailSender
from .in_app import InAppSender
from .sms import SmsSender
from .whatsapp import WhatsAppClient, WhatsAppSender, format_phone
from .whatsapp_web import WhatsAppWebClient


def build_channel_senders(
    settings: Settings | None = None,
    *,
    whatsapp_client: WhatsAppClient | None = None,
) -> Mapping[str, ChannelSender]:
    """Return the sender registered for every supported channel token."""

    settings = settings or get_settings()
    renderer = TemplateRenderer()

    senders: list[ChannelSender] = [
        EmailSender(renderer=renderer, settings=settings),
        WhatsAppSender(whatsapp_client, renderer=renderer, settings=settings),
        SmsSender(),
        InAppSender(),
    ]
    return {sender.channel: sender for sender in senders}


__all__ = [
    "ChannelSender",
    "EmailSender",
    "InAppSender",
    "SmsSender",
    "WhatsAppClient",
    "WhatsAppSender",
    "WhatsAppWebClient",
    "build_channel_senders",
    "format_phone",
]
