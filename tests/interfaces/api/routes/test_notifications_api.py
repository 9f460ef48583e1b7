"""Integration tests for the notification intake endpoints."""

from __future__ import annotations

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from conftest import save_project, save_record, save_user
from notification_engine.domain.entities import DeliveryStatus
from notification_engine.infrastructure.security import AuthenticatedUser
from notification_engine.interfaces.api.routes import notifications as notifications_routes

WORKFLOW_PAYLOAD = {
    "eventType": "PROJECT_READY",
    "entityType": "project",
    "entityId": "p1",
    "channels": ["email", "whatsapp"],
    "recipientTypes": ["project_owner"],
    "context": {"projectTitle": "Solar"},
}


def test_ping_is_public(client: TestClient) -> None:
    response = client.get("/api/notifications/")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_intake_requires_authentication(client: TestClient) -> None:
    response = client.post("/api/notifications/from-workflow", json=WORKFLOW_PAYLOAD)

    assert response.status_code == 401


def test_viewer_cannot_submit_notifications(client: TestClient, login) -> None:
    login("viewer", "notification-viewer")

    response = client.post("/api/notifications/from-workflow", json=WORKFLOW_PAYLOAD)

    assert response.status_code == 403
    assert response.json()["detail"] == "Insufficient permissions"


def test_workflow_notification_creates_records(client: TestClient, login, session, senders) -> None:
    """The p1 owner has no phone: email is sent and WhatsApp is recorded as failed."""

    login("workflow", "notification-sender")
    save_project(session, "p1", "u1", "u1@x.com", "Owner")

    response = client.post("/api/notifications/from-workflow", json=WORKFLOW_PAYLOAD)

    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "accepted"
    assert body["event_type"] == "PROJECT_READY"
    assert body["entity_id"] == "p1"
    assert body["deliveries"] == 2
    assert body["request_id"]
    assert len(senders["email"].calls) == 1
    assert senders["whatsapp"].calls == []

    login("admin", "notification-admin")
    listing = client.get("/api/notifications/user/u1").json()
    statuses = {item["channel"]: item["status"] for item in listing["notifications"]}
    assert listing["count"] == 2
    assert statuses == {"email": "sent", "whatsapp": "error"}


def test_snake_case_and_recipients_alias_are_accepted(client: TestClient, login, session) -> None:
    login("workflow", "system-admin")
    save_user(session, "a1", "a1@x.com", roles=["admin"])

    response = client.post(
        "/api/notifications/from-workflow",
        json={
            "event_type": "STATUS_CHANGE",
            "entity_type": "task",
            "entity_id": "t1",
            "channels": ["in_app"],
            "recipients": ["admins"],
        },
    )

    assert response.status_code == 202
    assert response.json()["deliveries"] == 1


@pytest.mark.parametrize(
    "payload",
    [
        {key: value for key, value in WORKFLOW_PAYLOAD.items() if key != "eventType"},
        {**WORKFLOW_PAYLOAD, "channels": []},
        {**WORKFLOW_PAYLOAD, "recipientTypes": []},
    ],
)
def test_invalid_payload_is_rejected(client: TestClient, login, payload) -> None:
    login("workflow", "notification-sender")

    response = client.post("/api/notifications/from-workflow", json=payload)

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_send_simple_notification(client: TestClient, login, senders) -> None:
    login("workflow", "notification-sender")

    response = client.post(
        "/api/notifications/send",
        json={
            "eventType": "NEW_TASK",
            "recipientId": "u5",
            "channel": "email",
            "context": {"recipient": {"email": "u5@x.com", "name": "Five"}},
        },
    )

    assert response.status_code == 202
    assert response.json()["deliveries"] == 1
    [(recipient, _)] = senders["email"].calls
    assert recipient.email == "u5@x.com"


def test_batch_reports_each_item(client: TestClient, login) -> None:
    login("workflow", "notification-sender")

    response = client.post(
        "/api/notifications/batch",
        json={
            "notifications": [
                {"eventType": "NEW_TASK", "recipientId": "u1", "channel": "email"},
                {"eventType": "NEW_TASK", "recipientId": "u2", "channel": "sms"},
            ]
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "batch_processed"
    assert (body["total"], body["success"], body["errors"]) == (2, 2, 0)
    assert [item["deliveries"] for item in body["results"]] == [1, 1]


def test_empty_batch_is_a_bad_request(client: TestClient, login) -> None:
    login("workflow", "notification-sender")

    response = client.post("/api/notifications/batch", json={"notifications": []})

    assert response.status_code == 400


def test_status_lookup(client: TestClient, login, session) -> None:
    login("viewer", "notification-viewer")
    record = save_record(session, status=DeliveryStatus.SENT)

    found = client.get(f"/api/notifications/status/{record.id}")
    missing = client.get("/api/notifications/status/9999")

    assert found.status_code == 200
    assert found.json()["status"] == "sent"
    assert missing.status_code == 404
    assert missing.json()["code"] == "NOT_FOUND"
    assert "timestamp" in missing.json()


def test_users_only_see_their_own_notifications(client: TestClient, login, session) -> None:
    save_record(session, user_id="u1", status=DeliveryStatus.SENT)
    save_record(session, user_id="u1", status=DeliveryStatus.ERROR)
    login("u1", "notification-viewer")

    own = client.get("/api/notifications/user/u1", params={"status": "error"})
    other = client.get("/api/notifications/user/u2")
    bad_limit = client.get("/api/notifications/user/u1", params={"limit": 0})

    assert own.status_code == 200
    assert own.json()["status"] == "error"
    assert own.json()["count"] == 1
    assert other.status_code == 403
    assert other.json()["detail"] == "You can only access your own notifications"
    assert bad_limit.status_code == 400


def test_websocket_requires_token(client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/api/notifications/ws"):
            pass

    assert excinfo.value.code == 1008


def test_websocket_answers_ping(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_resolve(token: str) -> AuthenticatedUser:
        if token != "good":
            raise HTTPException(status_code=401, detail="Invalid credentials")
        return AuthenticatedUser(user_id="u1", username="u1")

    monkeypatch.setattr(notifications_routes, "resolve_current_user", fake_resolve)

    with client.websocket_connect("/api/notifications/ws?token=good") as websocket:
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/api/notifications/ws?token=bad"):
            pass
