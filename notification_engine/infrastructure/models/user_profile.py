"""SQLAlchemy model for the local user cache."""

from sqlalchemy import JSON, Column, DateTime, String

from notification_engine.infrastructure.database import Base
from notification_engine.utils import storage_now


class UserProfileModel(Base):
    """Cached copy of a user fetched from the identity provider."""

    __tablename__ = "users_cache"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    phone = Column(String(40), nullable=True)
    roles = Column(JSON, nullable=False, default=list)
    last_sync = Column(DateTime(), nullable=True)
    created_at = Column(DateTime(), nullable=False, default=storage_now)


__all__ = ["UserProfileModel"]
