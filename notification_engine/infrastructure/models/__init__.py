"""ORM models used by the application infrastructure."""

from .delivery_record import DeliveryRecordModel
from .project import ProjectModel
from .user_profile import UserProfileModel

__all__ = [
    "DeliveryRecordModel",
    "ProjectModel",
    "UserProfileModel",
]
