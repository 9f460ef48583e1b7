"""Tests for the payload snapshot stored on delivery records."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from conftest import make_request
from notification_engine.domain.entities import PayloadSnapshot, ResolvedRecipient
from notification_engine.domain.exceptions import MalformedSnapshotError

CAPTURED_AT = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def _recipient() -> ResolvedRecipient:
    return ResolvedRecipient(
        user_id="u1",
        email="u1@x.com",
        name="User One",
        phone="11987654321",
        recipient_type="project_owner",
        metadata={"project_id": "p1"},
    )


def test_snapshot_rebuilds_single_channel_request() -> None:
    """A stored snapshot must be enough to resend on the record's own channel."""

    request = make_request(
        channels=["email", "whatsapp"],
        recipient_types=["project_owner", "admins"],
        context={"projectTitle": "Solar"},
    )
    raw = PayloadSnapshot.capture(_recipient(), request, captured_at=CAPTURED_AT).to_json()

    snapshot = PayloadSnapshot.from_json(raw)
    rebuilt = snapshot.to_request(
        event_type="PROJECT_READY", channel="whatsapp", default_entity_id="u1"
    )
    recipient = snapshot.to_recipient(default_user_id="ignored")

    assert rebuilt.channels == ("whatsapp",)
    assert rebuilt.recipient_types == ("manual",)
    assert rebuilt.entity_type == "project"
    assert rebuilt.entity_id == "p1"
    assert rebuilt.context["projectTitle"] == "Solar"
    assert recipient.user_id == "u1"
    assert recipient.email == "u1@x.com"
    assert recipient.phone == "11987654321"
    assert recipient.metadata == {"project_id": "p1"}
    assert snapshot.retry_attempts == 0
    assert snapshot.event.timestamp == CAPTURED_AT.isoformat()


def test_retry_attempt_counter_increments() -> None:
    snapshot = PayloadSnapshot.capture(_recipient(), make_request(), captured_at=CAPTURED_AT)

    retried = PayloadSnapshot.from_json(snapshot.with_retry_attempt().to_json())

    assert retried.retry_attempts == 1
    assert retried.with_retry_attempt().retry_attempts == 2


def test_legacy_camel_case_document_is_accepted() -> None:
    """Documents written with camelCase keys are still understood."""

    raw = json.dumps(
        {
            "recipient": {"userId": "u9", "email": "u9@x.com", "recipientType": "admin"},
            "event": {"type": "NEW_TASK", "entityType": "task", "entityId": "t1", "context": {}},
            "retryAttempts": 2,
        }
    )

    snapshot = PayloadSnapshot.from_json(raw)

    assert snapshot.recipient.user_id == "u9"
    assert snapshot.recipient.recipient_type == "admin"
    assert snapshot.event.entity_type == "task"
    assert snapshot.event.entity_id == "t1"
    assert snapshot.retry_attempts == 2


def test_double_encoded_document_is_unwrapped() -> None:
    inner = PayloadSnapshot.capture(_recipient(), make_request(), captured_at=CAPTURED_AT).to_json()

    snapshot = PayloadSnapshot.from_json(json.dumps(inner))

    assert snapshot.recipient.email == "u1@x.com"


def test_missing_event_block_uses_defaults() -> None:
    raw = json.dumps({"recipient": {"email": "u1@x.com", "recipient_type": "manual"}})

    snapshot = PayloadSnapshot.from_json(raw)
    request = snapshot.to_request(event_type="X", channel="email", default_entity_id="u1")

    assert snapshot.to_recipient(default_user_id="u1").user_id == "u1"
    assert request.entity_type == "user"
    assert request.entity_id == "u1"
    assert dict(request.context) == {}


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "   ",
        "not json",
        "[1, 2]",
        json.dumps({"event": {"type": "X"}}),
        json.dumps({"recipient": "u1"}),
    ],
)
def test_malformed_documents_are_rejected(raw) -> None:
    with pytest.raises(MalformedSnapshotError):
        PayloadSnapshot.from_json(raw)
