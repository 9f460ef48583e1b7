"""SQLAlchemy model for project ownership lookups."""

from sqlalchemy import Column, String

from notification_engine.infrastructure.database import Base


class ProjectModel(Base):
    """Projects known to the workflow, with their owner."""

    __tablename__ = "projects"

    id = Column(String(255), primary_key=True)
    owner_id = Column(String(255), nullable=False)
    owner_email = Column(String(255), nullable=False)
    owner_name = Column(String(255), nullable=True)


__all__ = ["ProjectModel"]
