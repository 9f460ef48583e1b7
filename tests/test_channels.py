"""Tests for the WhatsApp, SMS and in-app channel senders."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_request
from notification_engine.config import Settings
from notification_engine.domain.entities import ResolvedRecipient
from notification_engine.infrastructure.channels import (
    InAppSender,
    SmsSender,
    WhatsAppSender,
    build_channel_senders,
    format_phone,
)
from notification_engine.infrastructure.channels.whatsapp_web import build_chat_url

RECIPIENT = ResolvedRecipient(
    user_id="u1", email="u1@x.com", phone="(11) 98765-4321", name="Ana", recipient_type="manual"
)


class FakeWhatsAppClient:
    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.messages: list[tuple[str, str]] = []
        self.resets = 0

    def send_message(self, phone: str, message: str) -> None:
        self.messages.append((phone, message))
        if len(self.messages) <= self.failures:
            raise RuntimeError("chat did not load")

    def reset(self) -> None:
        self.resets += 1


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture()
def whatsapp_settings() -> Settings:
    return Settings(
        _env_file=None,
        whatsapp_enabled=True,
        whatsapp_max_retries=3,
        whatsapp_retry_delay_ms=1000,
        whatsapp_resend_window_minutes=5,
    )


def _sender(client, settings, sleeps=None, clock=None) -> WhatsAppSender:
    return WhatsAppSender(
        client,
        settings=settings,
        sleep=(sleeps.append if sleeps is not None else lambda seconds: None),
        clock=clock or FakeClock(),
    )


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("(11) 98765-4321", "5511987654321"),
        ("1133334444", "551133334444"),
        ("5511987654321", "5511987654321"),
        ("+44 20 7946 0958", "442079460958"),
        ("12345", None),
        ("1" * 16, None),
        ("", None),
        (None, None),
    ],
)
def test_format_phone(raw, expected) -> None:
    assert format_phone(raw) == expected


def test_whatsapp_retries_with_linear_backoff(whatsapp_settings) -> None:
    client = FakeWhatsAppClient(failures=2)
    sleeps: list[float] = []

    _sender(client, whatsapp_settings, sleeps).send(RECIPIENT, make_request())

    assert len(client.messages) == 3
    assert sleeps == [1.0, 2.0]
    assert client.resets == 2
    assert client.messages[-1][0] == "5511987654321"
    assert "Olá Ana" in client.messages[-1][1]


def test_whatsapp_gives_up_after_max_retries(whatsapp_settings) -> None:
    client = FakeWhatsAppClient(failures=10)

    with pytest.raises(RuntimeError, match="chat did not load"):
        _sender(client, whatsapp_settings).send(RECIPIENT, make_request())

    assert len(client.messages) == 3


def test_whatsapp_skips_recent_duplicate(whatsapp_settings) -> None:
    client = FakeWhatsAppClient()
    clock = FakeClock()
    sender = _sender(client, whatsapp_settings, clock=clock)

    sender.send(RECIPIENT, make_request())
    clock.now += timedelta(minutes=2)
    sender.send(RECIPIENT, make_request())
    clock.now += timedelta(minutes=4)
    sender.send(RECIPIENT, make_request())

    assert len(client.messages) == 2


def test_whatsapp_forgets_numbers_outside_the_resend_window(whatsapp_settings) -> None:
    client = FakeWhatsAppClient()
    clock = FakeClock()
    sender = _sender(client, whatsapp_settings, clock=clock)

    for index in range(50):
        recipient = ResolvedRecipient(
            user_id=f"u{index}",
            email=f"u{index}@x.com",
            phone=f"119{index:08d}",
            recipient_type="manual",
        )
        sender.send(recipient, make_request())
        clock.now += timedelta(minutes=1)

    assert len(client.messages) == 50
    assert len(sender._last_sent) == 5


def test_whatsapp_rejects_invalid_phone(whatsapp_settings) -> None:
    recipient = ResolvedRecipient(
        user_id="u1", email="u1@x.com", phone="123", recipient_type="manual"
    )

    with pytest.raises(ValueError):
        _sender(FakeWhatsAppClient(), whatsapp_settings).send(recipient, make_request())


def test_disabled_whatsapp_channel_fails(settings) -> None:
    with pytest.raises(RuntimeError, match="disabled"):
        _sender(FakeWhatsAppClient(), settings).send(RECIPIENT, make_request())


def test_chat_url_encodes_message() -> None:
    url = build_chat_url("5511987654321", "Olá Ana & cia")

    assert url == "https://web.whatsapp.com/send?phone=5511987654321&text=Ol%C3%A1%20Ana%20%26%20cia"


def test_sms_sender_masks_phone(caplog) -> None:
    with caplog.at_level("INFO"):
        SmsSender().send(RECIPIENT, make_request())

    assert "4321" in caplog.text
    assert "98765" not in caplog.text


class FakePublisher:
    def __init__(self) -> None:
        self.published: list[tuple[str, dict]] = []

    def publish(self, user_id: str, message: dict) -> bool:
        self.published.append((user_id, message))
        return False


def test_in_app_sender_publishes_event() -> None:
    publisher = FakePublisher()

    InAppSender(publisher).send(RECIPIENT, make_request(entity_id="p7"))

    [(user_id, message)] = publisher.published
    assert user_id == "u1"
    assert message["type"] == "notification"
    assert message["data"]["entity_id"] == "p7"


def test_build_channel_senders_registers_every_channel(settings) -> None:
    senders = build_channel_senders(settings)

    assert set(senders) == {"email", "whatsapp", "sms", "in_app"}
    assert all(sender.channel == channel for channel, sender in senders.items())
