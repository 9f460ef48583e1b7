"""Jinja2 rendering of message bodies for outbound channels."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any

from jinja2 import FileSystemLoader, TemplateError, TemplateNotFound, select_autoescape
from jinja2.sandbox import SandboxedEnvironment

from notification_engine.config import Settings, get_settings
from notification_engine.domain.entities import NotificationRequest, ResolvedRecipient
from notification_engine.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
DEFAULT_TEMPLATE_KEY = "default"
WHATSAPP_MAX_LENGTH = 4096
DATE_FORMAT = "%d/%m/%Y %H:%M"

_TEMPLATE_ALIASES: dict[str, tuple[str, ...]] = {
    "project_approval": ("PROJECT_APPROVAL", "PROJECT_READY", "PROJECT_READY_REVIEW"),
    "task_assignment": ("TASK_ASSIGNMENT", "NEW_TASK", "TASK_ASSIGNED"),
    "deadline_reminder": ("DEADLINE_REMINDER", "DEADLINE_APPROACHING", "DEADLINE_WARNING"),
    "status_update": ("STATUS_UPDATE", "STATUS_CHANGE", "STATUS_ALTERED"),
    "project_completed": ("PROJECT_COMPLETED", "PROJECT_FINISHED", "PROJECT_DONE"),
}
_EVENT_TO_TEMPLATE = {
    alias: key for key, aliases in _TEMPLATE_ALIASES.items() for alias in aliases
}

_EMAIL_SUBJECTS = {
    "PROJECT_APPROVAL": "Seu projeto está pronto para avaliação",
    "PROJECT_READY_REVIEW": "Seu projeto está pronto para avaliação",
    "TASK_ASSIGNMENT": "Nova tarefa atribuída",
    "DEADLINE_REMINDER": "Lembrete de prazo",
    "STATUS_UPDATE": "Atualização de status",
}

_BLANK_LINES = re.compile(r"\n\s*\n+")


class TemplateRenderError(Exception):
    """Raised when a message template cannot be rendered."""


def select_template_key(event_type: str | None) -> str:
    """Return the template key used for ``event_type``."""

    if not event_type:
        return DEFAULT_TEMPLATE_KEY
    key = _EVENT_TO_TEMPLATE.get(event_type.strip().upper())
    if key is None:
        logger.debug("No dedicated template for event %s; using default", event_type)
        return DEFAULT_TEMPLATE_KEY
    return key


def email_subject(event_type: str, entity_id: str, *, app_name: str = "Apporte") -> str:
    """Return the email subject line for an event."""

    prefix = _EMAIL_SUBJECTS.get(event_type.strip().upper(), f"Notificação do {app_name}")
    return f"{prefix} - {entity_id}"


def build_template_data(
    recipient: ResolvedRecipient,
    request: NotificationRequest,
    *,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Collect the variables available to every message template."""

    settings = settings or get_settings()
    now = now or now_in_app_timezone()
    context = request.context_dict()
    system_url = settings.system_url.rstrip("/")
    return {
        **context,
        "name": recipient.display_name(),
        "event_type": request.event_type,
        "entity_type": request.entity_type,
        "entity_id": request.entity_id,
        "project_title": context.get("projectTitle") or context.get("project_title") or request.entity_id,
        "from_column": context.get("fromColumn") or context.get("from_column") or "Coluna Anterior",
        "to_column": context.get("toColumn") or context.get("to_column") or "Coluna Atual",
        "project_url": f"{system_url}/projects/{request.entity_id}",
        "system_url": system_url,
        "app_name": settings.app_name,
        "date": now.strftime(DATE_FORMAT),
        "year": now.year,
        "context": context,
    }


class TemplateRenderer:
    """Render ``<channel>/<key>`` templates shipped with the package."""

    def __init__(self, templates_dir: Path | str = TEMPLATES_DIR) -> None:
        self._env = SandboxedEnvironment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(enabled_extensions=("html", "xml")),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_key: str, data: dict[str, Any]) -> str:
        """Render ``template_key`` (for example ``email/task_assignment.html``).

        A missing template falls back to the ``default`` template of the same
        channel directory.
        """

        try:
            template = self._env.get_template(template_key)
        except TemplateNotFound:
            fallback = _default_for(template_key)
            if fallback == template_key:
                raise TemplateRenderError(f"Template not found: {template_key}")
            logger.debug("Template %s not found; using %s", template_key, fallback)
            try:
                template = self._env.get_template(fallback)
            except TemplateNotFound as exc:
                raise TemplateRenderError(f"Template not found: {template_key}") from exc

        try:
            return template.render(**data)
        except TemplateError as exc:
            raise TemplateRenderError(f"Failed to render template {template_key}: {exc}") from exc

    def render_email(self, event_type: str, data: dict[str, Any]) -> str:
        return self.render(f"email/{select_template_key(event_type)}.html", data)

    def render_whatsapp(self, event_type: str, data: dict[str, Any]) -> str:
        rendered = self.render(f"whatsapp/{select_template_key(event_type)}.txt", data)
        return clean_whatsapp_message(rendered)


def clean_whatsapp_message(text: str) -> str:
    """Normalize blank lines and keep the message inside WhatsApp's size limit."""

    cleaned = _BLANK_LINES.sub("\n\n", text.strip())
    if len(cleaned) > WHATSAPP_MAX_LENGTH:
        logger.warning(
            "WhatsApp message truncated from %s to %s characters",
            len(cleaned),
            WHATSAPP_MAX_LENGTH,
        )
        cleaned = cleaned[: WHATSAPP_MAX_LENGTH - 6] + "\n[...]"
    return cleaned


def _default_for(template_key: str) -> str:
    path = Path(template_key)
    return str(path.with_name(f"{DEFAULT_TEMPLATE_KEY}{path.suffix}").as_posix())


__all__ = [
    "DEFAULT_TEMPLATE_KEY",
    "TemplateRenderError",
    "TemplateRenderer",
    "build_template_data",
    "clean_whatsapp_message",
    "email_subject",
    "select_template_key",
]
