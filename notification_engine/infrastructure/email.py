"""Transactional email delivery through the SendGrid REST API."""

from __future__ import annotations

import json
import logging
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from notification_engine.config import Settings, get_settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when SendGrid does not accept a message."""


def _describe_sendgrid_body(body: Any) -> str | None:
    """Return the error messages contained in a SendGrid response body."""

    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            body = json.loads(body)
        except json.JSONDecodeError:
            return body
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list):
            messages = [
                str(item["message"])
                for item in errors
                if isinstance(item, dict) and item.get("message")
            ]
            if messages:
                return "; ".join(messages)
        return json.dumps(body, default=str)
    if isinstance(body, list):
        return "; ".join(str(item) for item in body)
    return None


def is_email_configured(settings: Settings | None = None) -> bool:
    settings = settings or get_settings()
    return bool(settings.sendgrid_api_key and settings.sendgrid_sender)


def send_email(
    subject: str,
    html_content: str,
    recipient: str,
    *,
    settings: Settings | None = None,
) -> None:
    """Send an HTML email to ``recipient``.

    Raises :class:`EmailDeliveryError` when SendGrid is not configured, the
    request fails or the API answers with a non-2xx status.
    """

    settings = settings or get_settings()
    if not is_email_configured(settings):
        raise EmailDeliveryError("SendGrid is not configured")

    message = Mail(
        from_email=settings.sendgrid_sender,
        to_emails=recipient,
        subject=subject,
        html_content=html_content,
    )

    try:
        client = SendGridAPIClient(settings.sendgrid_api_key)
        response = client.send(message)
    except Exception as exc:
        status_code = getattr(exc, "status_code", None)
        details = _describe_sendgrid_body(getattr(exc, "body", None)) or str(exc)
        logger.error("SendGrid API request failed with status %s: %s", status_code, details)
        raise EmailDeliveryError(details) from exc

    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int) or not 200 <= status_code < 300:
        details = _describe_sendgrid_body(getattr(response, "body", None))
        logger.error("SendGrid API responded with status %s: %s", status_code, details)
        raise EmailDeliveryError(f"SendGrid responded with status {status_code}")

    logger.info("Email sent to %s: %s", recipient, subject)


__all__ = ["EmailDeliveryError", "is_email_configured", "send_email"]
