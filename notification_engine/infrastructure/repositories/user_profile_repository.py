"""Persistence layer for cached user profiles."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session

from notification_engine.domain.entities import ADMIN_ROLES, UserProfile
from notification_engine.infrastructure.models import UserProfileModel
from notification_engine.utils import from_storage, to_storage


class UserProfileRepository:
    """Provide lookup and upsert operations for :class:`UserProfile` entries."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: str) -> UserProfile | None:
        model = self.session.get(UserProfileModel, user_id)
        return self._to_entity(model) if model else None

    def get_by_email(self, email: str) -> UserProfile | None:
        model = (
            self.session.query(UserProfileModel)
            .filter(UserProfileModel.email == email)
            .first()
        )
        return self._to_entity(model) if model else None

    def list_by_roles(self, roles: Iterable[str]) -> Sequence[UserProfile]:
        # Roles are stored as a JSON array; match the quoted role name.
        roles_text = cast(UserProfileModel.roles, String)
        conditions = [roles_text.like(f'%"{role}"%') for role in roles]
        if not conditions:
            return []
        query = (
            self.session.query(UserProfileModel)
            .filter(or_(*conditions))
            .order_by(UserProfileModel.id)
        )
        return [self._to_entity(model) for model in query.all()]

    def list_admins(self) -> Sequence[UserProfile]:
        return self.list_by_roles(ADMIN_ROLES)

    def save(self, profile: UserProfile) -> UserProfile:
        """Insert ``profile`` or update the existing row with the same id."""

        model = self.session.get(UserProfileModel, profile.id)
        if model is None:
            model = UserProfileModel(id=profile.id)
            if profile.created_at is not None:
                model.created_at = to_storage(profile.created_at)
        self._apply_entity_to_model(model, profile)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _apply_entity_to_model(model: UserProfileModel, profile: UserProfile) -> None:
        model.email = profile.email
        model.name = profile.name
        model.phone = profile.phone
        model.roles = list(profile.roles or [])
        model.last_sync = to_storage(profile.last_sync)

    @staticmethod
    def _to_entity(model: UserProfileModel) -> UserProfile:
        return UserProfile(
            id=model.id,
            email=model.email,
            name=model.name,
            phone=model.phone,
            roles=list(model.roles or []),
            last_sync=from_storage(model.last_sync),
            created_at=from_storage(model.created_at),
        )


__all__ = ["UserProfileRepository"]
