"""SQLAlchemy model for persisted delivery attempts."""

from sqlalchemy import Column, DateTime, Integer, String, Text

from notification_engine.infrastructure.database import Base
from notification_engine.utils import storage_now


class DeliveryRecordModel(Base):
    """Database representation of one recipient × channel attempt."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(255), nullable=False, index=True)
    event_type = Column(String(120), nullable=False, index=True)
    channel = Column(String(30), nullable=False, index=True)
    payload_json = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, index=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(
        DateTime(), nullable=False, default=storage_now, index=True
    )
    sent_at = Column(DateTime(), nullable=True)


__all__ = ["DeliveryRecordModel"]
