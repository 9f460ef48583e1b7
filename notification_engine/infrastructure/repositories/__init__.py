"""Repository implementations for infrastructure layer."""

from .delivery_record_repository import DeliveryRecordRepository
from .project_repository import ProjectRepository
from .user_profile_repository import UserProfileRepository

__all__ = [
    "DeliveryRecordRepository",
    "ProjectRepository",
    "UserProfileRepository",
]
