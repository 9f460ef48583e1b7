"""Persistence helpers for delivery record entities."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Query, Session

from notification_engine.domain.entities import DeliveryRecord, DeliveryStatus
from notification_engine.infrastructure.models import DeliveryRecordModel
from notification_engine.utils import from_storage, storage_now, to_storage


class DeliveryRecordRepository:
    """Provide CRUD and aggregate queries for :class:`DeliveryRecord` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, record: DeliveryRecord) -> DeliveryRecord:
        model = DeliveryRecordModel()
        self._apply_entity_to_model(model, record, include_creation_fields=True)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def update(self, record: DeliveryRecord) -> DeliveryRecord:
        if record.id is None:
            raise ValueError("Notification id is required for updates")
        # Row lock so concurrent retries of the same record serialize.
        model = self.session.execute(
            select(DeliveryRecordModel)
            .where(DeliveryRecordModel.id == record.id)
            .with_for_update()
        ).scalar_one_or_none()
        if model is None:
            msg = f"Notification with id {record.id} not found"
            raise ValueError(msg)
        self._apply_entity_to_model(model, record, include_creation_fields=False)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def transition_status(
        self, record_id: int, *, expected: DeliveryStatus, target: DeliveryStatus
    ) -> bool:
        """Move a record from ``expected`` to ``target`` in a single statement.

        Returns ``False`` when the stored status is no longer ``expected``, so
        only one of several concurrent callers wins the transition.
        """

        result = self.session.execute(
            update(DeliveryRecordModel)
            .where(DeliveryRecordModel.id == record_id)
            .where(DeliveryRecordModel.status == expected.value)
            .values(status=target.value, error_message=None)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return result.rowcount == 1

    def get(self, record_id: int) -> DeliveryRecord | None:
        model = self.session.get(DeliveryRecordModel, record_id)
        if model is None:
            return None
        return self._to_entity(model)

    def delete(self, record_id: int) -> bool:
        """Delete a record by id.

        Returns ``True`` when a record was removed and ``False`` when the
        requested record was not found.
        """

        model = self.session.get(DeliveryRecordModel, record_id)
        if model is None:
            return False
        self.session.delete(model)
        self.session.commit()
        return True

    def delete_older_than(
        self, cutoff: datetime, *, statuses: Iterable[DeliveryStatus]
    ) -> int:
        status_values = [status.value for status in statuses]
        deleted = (
            self.session.query(DeliveryRecordModel)
            .filter(DeliveryRecordModel.created_at < to_storage(cutoff))
            .filter(DeliveryRecordModel.status.in_(status_values))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return int(deleted or 0)

    def list(
        self,
        *,
        status: str | None = None,
        channel: str | None = None,
        event_type: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        skip: int = 0,
        limit: int | None = 20,
    ) -> Sequence[DeliveryRecord]:
        query = self._filtered_query(
            status=status,
            channel=channel,
            event_type=event_type,
            start_date=start_date,
            end_date=end_date,
        )
        query = query.order_by(
            DeliveryRecordModel.created_at.desc(), DeliveryRecordModel.id.desc()
        ).offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def count(
        self,
        *,
        status: str | None = None,
        channel: str | None = None,
        event_type: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> int:
        query = self._filtered_query(
            status=status,
            channel=channel,
            event_type=event_type,
            start_date=start_date,
            end_date=end_date,
        )
        return query.count()

    def list_for_user(
        self, user_id: str, *, status: str | None = None, limit: int | None = 20
    ) -> Sequence[DeliveryRecord]:
        query = self._filtered_query(status=status).filter(
            DeliveryRecordModel.user_id == user_id
        )
        query = query.order_by(
            DeliveryRecordModel.created_at.desc(), DeliveryRecordModel.id.desc()
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def count_by_status(self, *, since: datetime | None = None) -> dict[str, int]:
        return self._grouped_counts(DeliveryRecordModel.status, since=since)

    def count_by_channel(self, *, since: datetime | None = None) -> dict[str, int]:
        return self._grouped_counts(DeliveryRecordModel.channel, since=since)

    def count_by_event_type(
        self, *, since: datetime | None = None, limit: int | None = None
    ) -> dict[str, int]:
        return self._grouped_counts(
            DeliveryRecordModel.event_type, since=since, limit=limit
        )

    def list_creation_dates(self, *, since: datetime | None = None) -> list[datetime]:
        query = self.session.query(DeliveryRecordModel.created_at)
        if since is not None:
            query = query.filter(
                DeliveryRecordModel.created_at >= to_storage(since)
            )
        return [from_storage(created_at) for (created_at,) in query.all()]

    def _grouped_counts(
        self, column, *, since: datetime | None = None, limit: int | None = None
    ) -> dict[str, int]:
        total = func.count(DeliveryRecordModel.id)
        query = self.session.query(column, total)
        if since is not None:
            query = query.filter(
                DeliveryRecordModel.created_at >= to_storage(since)
            )
        query = query.group_by(column).order_by(total.desc(), column)
        if limit is not None:
            query = query.limit(limit)
        return {key: int(count) for key, count in query.all()}

    def _filtered_query(
        self,
        *,
        status: str | None = None,
        channel: str | None = None,
        event_type: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> Query:
        query = self.session.query(DeliveryRecordModel)
        if status:
            query = query.filter(DeliveryRecordModel.status == status)
        if channel:
            query = query.filter(DeliveryRecordModel.channel == channel)
        if event_type:
            query = query.filter(DeliveryRecordModel.event_type == event_type)
        if start_date is not None:
            query = query.filter(
                DeliveryRecordModel.created_at >= to_storage(start_date)
            )
        if end_date is not None:
            query = query.filter(
                DeliveryRecordModel.created_at <= to_storage(end_date)
            )
        return query

    @staticmethod
    def _apply_entity_to_model(
        model: DeliveryRecordModel,
        record: DeliveryRecord,
        *,
        include_creation_fields: bool,
    ) -> None:
        if include_creation_fields:
            model.created_at = to_storage(record.created_at) or storage_now()
        model.user_id = record.user_id
        model.event_type = record.event_type
        model.channel = record.channel
        model.payload_json = record.payload_snapshot
        model.status = DeliveryStatus(record.status).value
        model.error_message = record.error_message
        model.sent_at = to_storage(record.sent_at)

    @staticmethod
    def _to_entity(model: DeliveryRecordModel) -> DeliveryRecord:
        return DeliveryRecord(
            id=model.id,
            user_id=model.user_id,
            event_type=model.event_type,
            channel=model.channel,
            status=DeliveryStatus(model.status),
            payload_snapshot=model.payload_json,
            error_message=model.error_message,
            created_at=from_storage(model.created_at),
            sent_at=from_storage(model.sent_at),
        )


__all__ = ["DeliveryRecordRepository"]
