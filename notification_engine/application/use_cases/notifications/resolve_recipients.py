"""Turn recipient-type tokens into concrete, contactable recipients."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Callable

from notification_engine.application.use_cases.users import UserDirectory
from notification_engine.domain.entities import (
    RECIPIENT_TYPE_ADMIN,
    RECIPIENT_TYPE_MANUAL,
    RECIPIENT_TYPE_PROJECT_OWNER,
    RECIPIENT_TYPE_SPECIFIC_USER,
    RECIPIENT_TYPE_WORKFLOW_PARTICIPANT,
    NotificationRequest,
    RecipientStrategy,
    ResolvedRecipient,
    UserProfile,
)
from notification_engine.domain.exceptions import RecipientResolutionError
from notification_engine.infrastructure.repositories import ProjectRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FallbackAdmin:
    """Administrator used when the admin lookup itself fails."""

    user_id: str = "admin-001"
    email: str = "admin@apporte.com"
    name: str = "Administrador"


class ResolutionCache:
    """Short-lived cache of resolved recipient lists keyed by request identity."""

    def __init__(
        self,
        ttl_seconds: float,
        *,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[float, list[ResolvedRecipient]]] = {}

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, key: str) -> list[ResolvedRecipient] | None:
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, recipients = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return list(recipients)

    def put(self, key: str, recipients: Iterable[ResolvedRecipient]) -> None:
        if not self.enabled:
            return
        with self._lock:
            now = self._clock()
            expired = [name for name, (expires_at, _) in self._entries.items() if now >= expires_at]
            for name in expired:
                del self._entries[name]
            self._entries.pop(key, None)
            while len(self._entries) >= self.max_entries:
                # Oldest insertion first.
                del self._entries[next(iter(self._entries))]
            self._entries[key] = (now + self.ttl_seconds, list(recipients))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class RecipientResolver:
    """Resolve every recipient type of a request using its strategy."""

    def __init__(
        self,
        directory: UserDirectory,
        projects: ProjectRepository,
        *,
        fallback_admin: FallbackAdmin | None = None,
        cache: ResolutionCache | None = None,
    ) -> None:
        self.directory = directory
        self.projects = projects
        self.fallback_admin = fallback_admin or FallbackAdmin()
        self.cache = cache

    def resolve(self, request: NotificationRequest) -> list[ResolvedRecipient]:
        """Return the recipients for ``request`` in strategy order.

        Results of the strategies are concatenated without removing
        duplicates. Failures are contained within each strategy; anything
        escaping them raises :class:`RecipientResolutionError`.
        """

        cache_key = request.identity_key() if self.cache is not None else None
        if cache_key is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug("Using cached recipients for event %s", request.event_type)
                return cached

        logger.debug(
            "Resolving recipients for event: %s, entity: %s",
            request.event_type,
            request.entity_id,
        )
        recipients: list[ResolvedRecipient] = []
        try:
            for token in request.recipient_types:
                strategy = RecipientStrategy.parse(token)
                if strategy is None:
                    logger.warning("Unknown recipient type: %s", token)
                    continue
                recipients.extend(self._resolve_strategy(strategy, request))
        except Exception as exc:
            logger.error("Recipient resolution failed for event %s: %s", request.event_type, exc)
            raise RecipientResolutionError(f"Failed to resolve recipients: {exc}") from exc

        logger.info(
            "Resolved %s total recipients for event %s",
            len(recipients),
            request.event_type,
        )
        if cache_key is not None:
            self.cache.put(cache_key, recipients)
        return recipients

    def _resolve_strategy(
        self, strategy: RecipientStrategy, request: NotificationRequest
    ) -> list[ResolvedRecipient]:
        if strategy is RecipientStrategy.PROJECT_OWNER:
            return self._resolve_project_owner(request.entity_id)
        if strategy is RecipientStrategy.ADMINS:
            return self._resolve_admins()
        if strategy is RecipientStrategy.WORKFLOW_PARTICIPANTS:
            return self._resolve_workflow_participants(request.context)
        if strategy is RecipientStrategy.SPECIFIC_USERS:
            return self._resolve_specific_users(request.context)
        return self._resolve_manual(request.entity_id, request.context)

    def _resolve_project_owner(self, project_id: str) -> list[ResolvedRecipient]:
        try:
            owner = self.projects.find_owner(project_id)
            if owner is None:
                logger.warning("Project not found: %s", project_id)
                return []

            profile = self.directory.get_or_refresh(
                owner.owner_id,
                fallback_email=owner.owner_email,
                fallback_name=owner.owner_name,
            )
            recipient = ResolvedRecipient(
                user_id=owner.owner_id,
                email=profile.email if profile else owner.owner_email,
                name=profile.name if profile else owner.owner_name,
                phone=profile.phone if profile else None,
                recipient_type=RECIPIENT_TYPE_PROJECT_OWNER,
                metadata={"project_id": project_id},
            )
        except Exception as exc:
            logger.error("Error resolving project owner for project %s: %s", project_id, exc)
            return []

        logger.info("Resolved project owner: %s <%s>", recipient.name, recipient.email)
        return [recipient]

    def _resolve_admins(self) -> list[ResolvedRecipient]:
        try:
            admins = self.directory.find_admins()
        except Exception as exc:
            logger.error("Error resolving admins: %s", exc)
            return [self._fallback_admin_recipient()]

        result = [
            _from_profile(profile, RECIPIENT_TYPE_ADMIN, {"role": "admin"})
            for profile in admins
        ]
        logger.info("Resolved %s admins", len(result))
        return result

    def _fallback_admin_recipient(self) -> ResolvedRecipient:
        fallback = self.fallback_admin
        profile: UserProfile | None = None
        try:
            profile = self.directory.get_or_refresh(
                fallback.user_id,
                fallback_email=fallback.email,
                fallback_name=fallback.name,
            )
        except Exception as exc:
            logger.debug("Fallback admin profile unavailable: %s", exc)

        logger.warning("Using fallback admin user")
        return ResolvedRecipient(
            user_id=fallback.user_id,
            email=profile.email if profile else fallback.email,
            name=profile.name if profile else fallback.name,
            phone=profile.phone if profile else None,
            recipient_type=RECIPIENT_TYPE_ADMIN,
            metadata={"role": "admin", "source": "fallback"},
        )

    def _resolve_workflow_participants(
        self, context: Mapping[str, Any]
    ) -> list[ResolvedRecipient]:
        result: list[ResolvedRecipient] = []
        try:
            for participant_id in _string_list(context.get("participant_ids")):
                profile = self.directory.find_by_user_id(participant_id)
                if profile is None:
                    logger.debug("Workflow participant %s not found", participant_id)
                    continue
                result.append(
                    _from_profile(
                        profile,
                        RECIPIENT_TYPE_WORKFLOW_PARTICIPANT,
                        {"context": "workflow", "source": "context"},
                    )
                )
        except Exception as exc:
            logger.error("Error resolving workflow participants: %s", exc)
            return []

        logger.info("Resolved %s workflow participants from context", len(result))
        return result

    def _resolve_specific_users(self, context: Mapping[str, Any]) -> list[ResolvedRecipient]:
        result: list[ResolvedRecipient] = []
        try:
            for email in _string_list(context.get("user_emails")):
                profile = self.directory.find_by_email(email)
                if profile is None:
                    logger.debug("No cached user with email %s", email)
                    continue
                result.append(
                    _from_profile(
                        profile,
                        RECIPIENT_TYPE_SPECIFIC_USER,
                        {"source": "database", "email_provided": email},
                    )
                )
        except Exception as exc:
            logger.error("Error resolving specific users: %s", exc)
            return []
        return result

    def _resolve_manual(
        self, entity_id: str, context: Mapping[str, Any]
    ) -> list[ResolvedRecipient]:
        try:
            profile = self.directory.find_by_user_id(entity_id)
            if profile is not None:
                recipient = _from_profile(
                    profile,
                    RECIPIENT_TYPE_MANUAL,
                    {"source": "database", "entity_id": entity_id},
                )
                logger.info(
                    "Resolved manual recipient from database: %s <%s>",
                    recipient.name,
                    recipient.email,
                )
                return [recipient]

            inline = context.get("recipient")
            if isinstance(inline, Mapping):
                recipient = ResolvedRecipient(
                    user_id=_first(inline, "user_id", "userId") or entity_id,
                    email=inline.get("email") or f"{entity_id}@example.com",
                    name=inline.get("name") or f"User {entity_id}",
                    phone=inline.get("phone"),
                    recipient_type=RECIPIENT_TYPE_MANUAL,
                    metadata={"source": "context", "entity_id": entity_id},
                )
                logger.info(
                    "Resolved manual recipient from context: %s <%s>",
                    recipient.name,
                    recipient.email,
                )
                return [recipient]
        except Exception as exc:
            logger.error("Error resolving manual recipient: %s", exc)
            return [
                ResolvedRecipient(
                    user_id=entity_id,
                    email=f"{entity_id}@error.example.com",
                    name="Error Recipient",
                    recipient_type=RECIPIENT_TYPE_MANUAL,
                    metadata={"source": "error_fallback"},
                )
            ]

        logger.warning("Using fallback manual recipient for: %s", entity_id)
        return [
            ResolvedRecipient(
                user_id=entity_id,
                email=f"{entity_id}@example.com",
                name=f"User {entity_id}",
                recipient_type=RECIPIENT_TYPE_MANUAL,
                metadata={"source": "fallback", "entity_id": entity_id},
            )
        ]


def _from_profile(
    profile: UserProfile, recipient_type: str, metadata: dict[str, Any]
) -> ResolvedRecipient:
    return ResolvedRecipient(
        user_id=profile.id,
        email=profile.email,
        name=profile.name,
        phone=profile.phone,
        recipient_type=recipient_type,
        metadata=metadata,
    )


def _string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, Iterable):
        return [str(item) for item in value if item is not None and str(item).strip()]
    logger.warning("Ignoring recipient list of unexpected type %s", type(value).__name__)
    return []


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return None


__all__ = ["FallbackAdmin", "RecipientResolver", "ResolutionCache"]
