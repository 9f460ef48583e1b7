"""WhatsApp channel delivering through a WhatsApp Web session."""

from __future__ import annotations

import logging
import re
import threading
import time
from datetime import datetime, timedelta
from typing import Callable, Protocol

from notification_engine.config import Settings, get_settings
from notification_engine.domain.entities import Channel, NotificationRequest, ResolvedRecipient
from notification_engine.infrastructure.templates import (
    TemplateRenderError,
    TemplateRenderer,
    build_template_data,
)
from notification_engine.utils import mask_phone, now_in_app_timezone

logger = logging.getLogger(__name__)

MIN_PHONE_DIGITS = 10
MAX_PHONE_DIGITS = 15
_NON_DIGITS = re.compile(r"\D")


class WhatsAppClient(Protocol):
    def send_message(self, phone: str, message: str) -> None: ...

    def reset(self) -> None: ...


def format_phone(phone: str | None, country_code: str = "55") -> str | None:
    """Return ``phone`` as international digits or ``None`` when unusable.

    Numbers with at most 11 digits that do not already start with the
    country code get it prepended.
    """

    if not phone or not phone.strip():
        return None
    digits = _NON_DIGITS.sub("", phone)
    if not MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS:
        logger.error("Invalid phone number length: %s digits", len(digits))
        return None
    if not digits.startswith(country_code) and len(digits) <= 11:
        digits = f"{country_code}{digits}"
    return digits


class WhatsAppSender:
    channel = Channel.WHATSAPP.value

    def __init__(
        self,
        client: WhatsAppClient | None,
        *,
        renderer: TemplateRenderer | None = None,
        settings: Settings | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = now_in_app_timezone,
    ) -> None:
        self.client = client
        self.renderer = renderer or TemplateRenderer()
        self.settings = settings or get_settings()
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self._last_sent: dict[str, datetime] = {}

    def send(self, recipient: ResolvedRecipient, request: NotificationRequest) -> None:
        if not self.settings.whatsapp_enabled or self.client is None:
            raise RuntimeError("WhatsApp channel is disabled")

        phone = format_phone(recipient.phone, self.settings.whatsapp_default_country_code)
        if phone is None:
            logger.error("Invalid phone number for recipient email: %s", recipient.email)
            raise ValueError("Invalid or missing phone number")

        if self._sent_recently(phone):
            logger.warning("Message already sent recently to %s. Skipping.", mask_phone(phone))
            return

        message = self._render(recipient, request)
        logger.info(
            "Sending WhatsApp to %s for event: %s", mask_phone(phone), request.event_type
        )

        max_retries = self.settings.whatsapp_max_retries
        last_error: Exception | None = None
        for attempt in range(1, max_retries + 1):
            try:
                self.client.send_message(phone, message)
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "Attempt %s failed for %s: %s", attempt, mask_phone(phone), exc
                )
                if attempt < max_retries:
                    self._sleep(self.settings.whatsapp_retry_delay_ms * attempt / 1000)
                    self.client.reset()
                continue

            self._record_sent(phone)
            logger.info("WhatsApp message sent successfully to %s", mask_phone(phone))
            return

        logger.error(
            "Failed to send WhatsApp to %s after %s attempts", mask_phone(phone), max_retries
        )
        raise RuntimeError(f"Failed to send WhatsApp message: {last_error}") from last_error

    def _render(self, recipient: ResolvedRecipient, request: NotificationRequest) -> str:
        data = build_template_data(recipient, request, settings=self.settings)
        try:
            return self.renderer.render_whatsapp(request.event_type, data)
        except TemplateRenderError as exc:
            logger.error("Error rendering WhatsApp template: %s", exc)
            return (
                f"*NOTIFICAÇÃO DO {self.settings.app_name.upper()}*\n\n"
                f"Olá {recipient.display_name()},\n\n"
                "Você recebeu uma notificação:\n"
                f"* Evento: {request.event_type}\n"
                f"* ID: {request.entity_id}\n\n"
                f"Acesse o sistema para detalhes:\n{self.settings.system_url}"
            )

    def _sent_recently(self, phone: str) -> bool:
        window = timedelta(minutes=self.settings.whatsapp_resend_window_minutes)
        if not window:
            return False
        with self._lock:
            last_sent = self._last_sent.get(phone)
        return last_sent is not None and last_sent + window > self._clock()

    def _record_sent(self, phone: str) -> None:
        now = self._clock()
        cutoff = now - timedelta(minutes=self.settings.whatsapp_resend_window_minutes)
        with self._lock:
            for known in [key for key, sent_at in self._last_sent.items() if sent_at <= cutoff]:
                del self._last_sent[known]
            self._last_sent[phone] = now


__all__ = ["WhatsAppClient", "WhatsAppSender", "format_phone"]
