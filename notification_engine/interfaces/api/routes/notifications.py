"""Endpoints that accept notification events and expose their status."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from notification_engine.application.use_cases.notifications import (
    MAX_USER_NOTIFICATIONS,
    RecipientResolver,
    get_notification,
    get_user_notifications,
    process_workflow_notification,
    send_batch,
    send_simple,
)
from notification_engine.infrastructure.channels import ChannelSender
from notification_engine.infrastructure.database import get_db
from notification_engine.infrastructure.notifications import notification_manager
from notification_engine.infrastructure.security import AuthenticatedUser
from notification_engine.interfaces.api.dependencies import (
    get_channel_senders,
    get_recipient_resolver,
    require_sender,
    require_viewer,
    resolve_current_user,
)
from notification_engine.interfaces.api.schemas import (
    AcceptedResponse,
    BatchItemRead,
    BatchNotificationRequest,
    BatchResponse,
    DeliveryRecordRead,
    SimpleNotificationRequest,
    UserNotificationsResponse,
    WorkflowNotificationRequest,
)
from notification_engine.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def _request_id() -> str:
    return uuid.uuid4().hex


@router.get("/")
def ping() -> dict[str, Any]:
    """Liveness probe that does not require authentication."""

    return {
        "message": "Notification Engine is running!",
        "status": "healthy",
        "timestamp": now_in_app_timezone().isoformat(),
    }


@router.post(
    "/from-workflow",
    response_model=AcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def process_from_workflow(
    payload: WorkflowNotificationRequest,
    db: Session = Depends(get_db),
    resolver: RecipientResolver = Depends(get_recipient_resolver),
    senders: Mapping[str, ChannelSender] = Depends(get_channel_senders),
    current_user: AuthenticatedUser = Depends(require_sender),
) -> AcceptedResponse:
    logger.info(
        "Received workflow notification: %s from user: %s",
        payload.event_type,
        current_user.username,
    )
    try:
        request = payload.to_domain()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    records = process_workflow_notification(db, request, resolver=resolver, senders=senders)
    return AcceptedResponse(
        message="Workflow notification processing started",
        request_id=_request_id(),
        event_type=request.event_type,
        entity_id=request.entity_id,
        deliveries=len(records),
    )


@router.post("/send", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
def send_notification(
    payload: SimpleNotificationRequest,
    db: Session = Depends(get_db),
    resolver: RecipientResolver = Depends(get_recipient_resolver),
    senders: Mapping[str, ChannelSender] = Depends(get_channel_senders),
    current_user: AuthenticatedUser = Depends(require_sender),
) -> AcceptedResponse:
    logger.info(
        "Manual notification: %s to %s from user: %s",
        payload.event_type,
        payload.recipient_id,
        current_user.username,
    )
    try:
        records = send_simple(db, payload.to_domain(), resolver=resolver, senders=senders)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return AcceptedResponse(
        message="Notification accepted for processing",
        request_id=_request_id(),
        event_type=payload.event_type,
        entity_id=payload.recipient_id,
        deliveries=len(records),
    )


@router.post("/batch", response_model=BatchResponse)
def send_notification_batch(
    payload: BatchNotificationRequest,
    db: Session = Depends(get_db),
    resolver: RecipientResolver = Depends(get_recipient_resolver),
    senders: Mapping[str, ChannelSender] = Depends(get_channel_senders),
    current_user: AuthenticatedUser = Depends(require_sender),
) -> BatchResponse:
    logger.info(
        "Batch notification with %s items from user: %s",
        len(payload.notifications),
        current_user.username,
    )
    try:
        result = send_batch(
            db,
            [item.to_domain() for item in payload.notifications],
            resolver=resolver,
            senders=senders,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return BatchResponse(
        message=(
            f"Processed {result.total} notifications: "
            f"{result.success} success, {result.errors} errors"
        ),
        total=result.total,
        success=result.success,
        errors=result.errors,
        results=[
            BatchItemRead(
                event_type=item.event_type,
                recipient_id=item.recipient_id,
                status=item.status,
                deliveries=len(item.records),
                error=item.error,
            )
            for item in result.results
        ],
    )


@router.get("/status/{record_id}", response_model=DeliveryRecordRead)
def get_notification_status(
    record_id: int,
    db: Session = Depends(get_db),
    _: AuthenticatedUser = Depends(require_viewer),
) -> DeliveryRecordRead:
    return DeliveryRecordRead.from_entity(get_notification(db, record_id))


@router.get("/user/{user_id}", response_model=UserNotificationsResponse)
def list_user_notifications(
    user_id: str,
    status_filter: str | None = Query(default=None, alias="status"),
    limit: int = Query(default=20),
    db: Session = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_viewer),
) -> UserNotificationsResponse:
    """Return the latest records of ``user_id``; non-admins only see their own."""

    if not current_user.is_admin() and current_user.user_id != user_id:
        logger.warning(
            "User %s tried to access notifications of user %s",
            current_user.username,
            user_id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only access your own notifications",
        )
    if limit < 1 or limit > MAX_USER_NOTIFICATIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Limit must be between 1 and {MAX_USER_NOTIFICATIONS}",
        )

    records = get_user_notifications(db, user_id, status=status_filter, limit=limit)
    return UserNotificationsResponse(
        user_id=user_id,
        status=status_filter or "all",
        notifications=[DeliveryRecordRead.from_entity(record) for record in records],
        count=len(records),
    )


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint streaming in-app notifications to the caller."""

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008)
        return

    try:
        user = resolve_current_user(token)
    except HTTPException:
        await websocket.close(code=1008)
        return

    await notification_manager.connect(user.user_id, websocket)
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                continue
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        notification_manager.disconnect(user.user_id, websocket)
    except Exception:  # pragma: no cover - connection torn down unexpectedly
        notification_manager.disconnect(user.user_id, websocket)
        raise


__all__ = ["router"]
