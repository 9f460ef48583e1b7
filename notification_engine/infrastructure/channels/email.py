"""Email channel backed by SendGrid."""

from __future__ import annotations

import logging
from html import escape
from typing import Callable

from notification_engine.config import Settings, get_settings
from notification_engine.domain.entities import Channel, NotificationRequest, ResolvedRecipient
from notification_engine.infrastructure.email import send_email
from notification_engine.infrastructure.templates import (
    TemplateRenderError,
    TemplateRenderer,
    build_template_data,
    email_subject,
)

logger = logging.getLogger(__name__)

EmailTransport = Callable[..., None]


class EmailSender:
    channel = Channel.EMAIL.value

    def __init__(
        self,
        *,
        renderer: TemplateRenderer | None = None,
        settings: Settings | None = None,
        transport: EmailTransport = send_email,
    ) -> None:
        self.renderer = renderer or TemplateRenderer()
        self.settings = settings or get_settings()
        self._transport = transport

    def send(self, recipient: ResolvedRecipient, request: NotificationRequest) -> None:
        if not recipient.has_email():
            raise ValueError("Recipient has no email address")

        subject = email_subject(
            request.event_type, request.entity_id, app_name=self.settings.app_name
        )
        html_content = self._render(recipient, request)
        self._transport(subject, html_content, recipient.email, settings=self.settings)
        logger.info(
            "Email sent successfully to %s for event: %s",
            recipient.email,
            request.event_type,
        )

    def _render(self, recipient: ResolvedRecipient, request: NotificationRequest) -> str:
        data = build_template_data(recipient, request, settings=self.settings)
        try:
            return self.renderer.render_email(request.event_type, data)
        except TemplateRenderError as exc:
            logger.error("Error rendering email template: %s", exc)
            return (
                "<html><body>"
                f"<h1>Notificação do {escape(self.settings.app_name)}</h1>"
                f"<p>Olá {escape(recipient.display_name())},</p>"
                f"<p>Você recebeu uma notificação: {escape(request.event_type)}</p>"
                f"<p>ID: {escape(request.entity_id)}</p>"
                "<p>Acesse o sistema para mais detalhes.</p>"
                "</body></html>"
            )


__all__ = ["EmailSender"]
