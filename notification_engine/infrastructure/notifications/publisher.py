"""Push in-app notifications to websocket subscribers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from anyio import from_thread

from notification_engine.domain.entities import NotificationRequest
from notification_engine.utils import now_in_app_timezone

from .manager import NotificationConnectionManager, notification_manager

logger = logging.getLogger(__name__)


def serialize_in_app_event(user_id: str, request: NotificationRequest) -> dict[str, Any]:
    """Return the websocket payload announcing ``request`` to ``user_id``."""

    return {
        "type": "notification",
        "data": {
            "user_id": user_id,
            "event_type": request.event_type,
            "entity_type": request.entity_type,
            "entity_id": request.entity_id,
            "context": request.context_dict(),
            "created_at": now_in_app_timezone().isoformat(),
        },
    }


class NotificationPublisher:
    """Schedule delivery of realtime messages from sync or async code."""

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager
        self._tasks: set[asyncio.Task] = set()

    def publish(self, user_id: str, message: dict[str, Any]) -> bool:
        """Schedule ``message`` for ``user_id``.

        Returns ``False`` when no event loop is reachable from the calling
        thread, in which case nothing is sent.
        """

        if not self._manager.is_connected(user_id):
            return False

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                from_thread.run(self._manager.send_to_user, user_id, message)
            except RuntimeError:
                logger.debug("No event loop available to push realtime message to %s", user_id)
                return False
        else:
            task = loop.create_task(self._manager.send_to_user(user_id, message))
            self._tasks.add(task)
            task.add_done_callback(self._task_done)
        return True

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Realtime push failed: %s", task.exception())


notification_publisher = NotificationPublisher(notification_manager)


__all__ = ["NotificationPublisher", "notification_publisher", "serialize_in_app_event"]
