"""Administrative endpoints over delivery records."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from notification_engine.application.use_cases.notifications import (
    NotificationFilters,
    cleanup_old_notifications,
    delete_notification,
    get_health,
    get_notification,
    get_statistics,
    list_notifications,
    retry_notification,
)
from notification_engine.infrastructure.channels import ChannelSender, WhatsAppWebClient
from notification_engine.infrastructure.database import get_db
from notification_engine.infrastructure.security import AuthenticatedUser
from notification_engine.interfaces.api.dependencies import (
    get_channel_senders,
    get_whatsapp_client,
    require_admin,
    require_super_admin,
)
from notification_engine.interfaces.api.schemas import (
    CleanupResponse,
    DeliveryRecordDetail,
    DeliveryRecordPage,
    DeliveryRecordRead,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/notifications", tags=["admin-notifications"])


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/", response_model=DeliveryRecordPage)
def list_delivery_records(
    page: int = Query(default=0, ge=0),
    size: int = Query(default=20, ge=1, le=100),
    status_filter: str | None = Query(default=None, alias="status"),
    channel: str | None = Query(default=None),
    event_type: str | None = Query(default=None, alias="eventType"),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_admin),
) -> DeliveryRecordPage:
    filters = NotificationFilters(
        status=status_filter,
        channel=channel,
        event_type=event_type,
        start_date=start_date,
        end_date=end_date,
    )
    try:
        records, total = list_notifications(db, filters=filters, page=page, size=size)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return DeliveryRecordPage(
        items=[DeliveryRecordRead.from_entity(record) for record in records],
        total=total,
        page=page,
        size=size,
    )


@router.get("/stats")
def notification_statistics(
    days: int = Query(default=7, ge=1, le=365),
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_admin),
) -> dict[str, Any]:
    return get_statistics(db, days=days)


@router.get("/health")
def notification_health(
    db: Session = Depends(get_db),
    whatsapp_client: WhatsAppWebClient | None = Depends(get_whatsapp_client),
    _: AuthenticatedUser = Depends(require_admin),
) -> JSONResponse:
    whatsapp = whatsapp_client.health() if whatsapp_client is not None else None
    health = get_health(db, whatsapp=whatsapp)
    code = status.HTTP_200_OK if health["status"] == "UP" else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(status_code=code, content=health)


@router.post("/cleanup", response_model=CleanupResponse)
def cleanup_notifications(
    days_to_keep: int = Query(default=30, ge=1),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_super_admin),
) -> CleanupResponse:
    logger.info(
        "Cleanup of notifications older than %s days requested by %s",
        days_to_keep,
        current_user.username,
    )
    try:
        deleted = cleanup_old_notifications(db, days_to_keep=days_to_keep)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return CleanupResponse(deleted=deleted, days_to_keep=days_to_keep)


@router.get("/{record_id}", response_model=DeliveryRecordDetail)
def get_delivery_record(
    record_id: int,
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_admin),
) -> DeliveryRecordDetail:
    return DeliveryRecordDetail.from_entity(get_notification(db, record_id))


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_delivery_record(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_super_admin),
) -> Response:
    delete_notification(db, record_id)
    logger.info("Notification %s deleted by %s", record_id, current_user.username)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{record_id}/retry", response_model=DeliveryRecordRead)
def retry_delivery_record(
    record_id: int,
    db: Session = Depends(get_db),
    senders: Mapping[str, ChannelSender] = Depends(get_channel_senders),
    current_user: AuthenticatedUser = Depends(require_admin),
) -> DeliveryRecordRead:
    logger.info("Retry of notification %s requested by %s", record_id, current_user.username)
    record = retry_notification(db, record_id, senders=senders)
    return DeliveryRecordRead.from_entity(record)


__all__ = ["router"]
