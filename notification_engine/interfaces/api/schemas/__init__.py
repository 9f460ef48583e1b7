from .notification import (
    AcceptedResponse,
    BatchItemRead,
    BatchNotificationRequest,
    BatchResponse,
    CleanupResponse,
    DeliveryRecordDetail,
    DeliveryRecordPage,
    DeliveryRecordRead,
    ErrorResponse,
    SimpleNotificationRequest,
    UserNotificationsResponse,
    WorkflowNotificationRequest,
)

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
