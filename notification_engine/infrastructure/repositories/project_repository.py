"""Read access to project ownership."""

from __future__ import annotations

from sqlalchemy.orm import Session

from notification_engine.domain.entities import ProjectOwner
from notification_engine.infrastructure.models import ProjectModel


class ProjectRepository:
    """Look up which user owns a project."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_owner(self, project_id: str) -> ProjectOwner | None:
        model = self.session.get(ProjectModel, project_id)
        if model is None:
            return None
        return ProjectOwner(
            project_id=model.id,
            owner_id=model.owner_id,
            owner_email=model.owner_email,
            owner_name=model.owner_name,
        )

    def save(self, owner: ProjectOwner) -> ProjectOwner:
        model = self.session.get(ProjectModel, owner.project_id)
        if model is None:
            model = ProjectModel(id=owner.project_id)
        model.owner_id = owner.owner_id
        model.owner_email = owner.owner_email
        model.owner_name = owner.owner_name
        self.session.add(model)
        self.session.commit()
        return owner


__all__ = ["ProjectRepository"]
