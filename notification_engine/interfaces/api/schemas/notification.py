"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from notification_engine.application.use_cases.notifications import SimpleNotification
from notification_engine.domain.entities import DeliveryRecord, NotificationRequest


class _RequestModel(BaseModel):
    # Clients may send either snake_case or camelCase keys.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WorkflowNotificationRequest(_RequestModel):
    """Event emitted by a workflow that must be turned into notifications."""

    event_type: str = Field(..., min_length=1)
    entity_type: str = Field(..., min_length=1)
    entity_id: str = Field(..., min_length=1)
    channels: list[str] = Field(..., min_length=1)
    recipient_types: list[str] = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("recipient_types", "recipientTypes", "recipients"),
    )
    context: dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> NotificationRequest:
        return NotificationRequest.create(
            event_type=self.event_type,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            channels=self.channels,
            recipient_types=self.recipient_types,
            context=self.context,
        )


class SimpleNotificationRequest(_RequestModel):
    """Ad-hoc notification to one user over one channel."""

    event_type: str = Field(..., min_length=1)
    recipient_id: str = Field(..., min_length=1)
    channel: str = Field(..., min_length=1)
    context: dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> SimpleNotification:
        return SimpleNotification(
            event_type=self.event_type,
            recipient_id=self.recipient_id,
            channel=self.channel,
            context=self.context,
        )


class BatchNotificationRequest(_RequestModel):
    notifications: list[SimpleNotificationRequest] = Field(default_factory=list)


class DeliveryRecordRead(BaseModel):
    """Representation of a delivery record returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    event_type: str
    channel: str
    status: str
    error_message: str | None = None
    created_at: datetime | None = None
    sent_at: datetime | None = None

    @classmethod
    def from_entity(cls, record: DeliveryRecord) -> "DeliveryRecordRead":
        return cls(
            id=record.id or 0,
            user_id=record.user_id,
            event_type=record.event_type,
            channel=record.channel,
            status=record.status.value,
            error_message=record.error_message,
            created_at=record.created_at,
            sent_at=record.sent_at,
        )


class DeliveryRecordDetail(DeliveryRecordRead):
    payload_json: str | None = None

    @classmethod
    def from_entity(cls, record: DeliveryRecord) -> "DeliveryRecordDetail":
        base = DeliveryRecordRead.from_entity(record)
        return cls(**base.model_dump(), payload_json=record.payload_snapshot)


class DeliveryRecordPage(BaseModel):
    items: list[DeliveryRecordRead]
    total: int
    page: int
    size: int


class UserNotificationsResponse(BaseModel):
    user_id: str
    status: str
    notifications: list[DeliveryRecordRead]
    count: int


class AcceptedResponse(BaseModel):
    status: str = "accepted"
    message: str
    request_id: str
    event_type: str
    entity_id: str
    deliveries: int


class BatchItemRead(BaseModel):
    event_type: str
    recipient_id: str
    status: str
    deliveries: int = 0
    error: str | None = None


class BatchResponse(BaseModel):
    status: str = "batch_processed"
    message: str
    total: int
    success: int
    errors: int
    results: list[BatchItemRead]


class CleanupResponse(BaseModel):
    deleted: int
    days_to_keep: int


class ErrorResponse(BaseModel):
    code: str
    message: str
    timestamp: datetime


__all__ = [
    "AcceptedResponse",
    "BatchItemRead",
    "BatchNotificationRequest",
    "BatchResponse",
    "CleanupResponse",
    "DeliveryRecordDetail",
    "DeliveryRecordPage",
    "DeliveryRecordRead",
    "ErrorResponse",
    "SimpleNotificationRequest",
    "UserNotificationsResponse",
    "WorkflowNotificationRequest",
]
