"""Tests for recipient resolution strategies."""

from __future__ import annotations

import pytest

from conftest import FakeIdentityProvider, make_request, save_project, save_user
from notification_engine.application.use_cases.notifications import (
    FallbackAdmin,
    RecipientResolver,
    ResolutionCache,
)
from notification_engine.application.use_cases.users import UserDirectory
from notification_engine.domain.entities import IdentityUser
from notification_engine.domain.exceptions import RecipientResolutionError
from notification_engine.infrastructure.repositories import ProjectRepository


class BrokenDirectory:
    """Directory whose every lookup fails."""

    def __init__(self) -> None:
        self.calls = 0

    def _fail(self, *args, **kwargs):
        self.calls += 1
        raise RuntimeError("directory unavailable")

    find_admins = _fail
    find_by_user_id = _fail
    find_by_email = _fail
    get_or_refresh = _fail


@pytest.fixture()
def resolver(session) -> RecipientResolver:
    return RecipientResolver(UserDirectory(session), ProjectRepository(session))


def test_project_owner_is_resolved_from_project(session, resolver) -> None:
    save_project(session, "p1", "u1", "u1@x.com", "Owner")

    recipients = resolver.resolve(make_request(recipient_types=["project_owner"]))

    assert len(recipients) == 1
    owner = recipients[0]
    assert owner.user_id == "u1"
    assert owner.email == "u1@x.com"
    assert owner.name == "Owner"
    assert owner.phone is None
    assert owner.recipient_type == "project_owner"
    assert owner.metadata == {"project_id": "p1"}


def test_project_owner_profile_is_refreshed_from_identity_provider(session) -> None:
    save_project(session, "p1", "u1", "old@x.com", "Old Name")
    provider = FakeIdentityProvider(
        {"u1": IdentityUser(id="u1", email="u1@x.com", name="Ana", phone="11999998888")}
    )
    resolver = RecipientResolver(UserDirectory(session, provider), ProjectRepository(session))

    [owner] = resolver.resolve(make_request())

    assert provider.requested == ["u1"]
    assert owner.email == "u1@x.com"
    assert owner.name == "Ana"
    assert owner.phone == "11999998888"


def test_unknown_project_resolves_to_nobody(resolver) -> None:
    assert resolver.resolve(make_request(entity_id="missing")) == []


def test_admins_are_looked_up_by_role(session, resolver) -> None:
    save_user(session, "a1", "a1@x.com", roles=["admin"])
    save_user(session, "a2", "a2@x.com", roles=["supervisor"])
    save_user(session, "n1", "n1@x.com", roles=["notification-admin"])
    save_user(session, "u1", "u1@x.com", roles=["user"])

    recipients = resolver.resolve(make_request(recipient_types=["admins"]))

    assert sorted(recipient.user_id for recipient in recipients) == ["a1", "a2", "n1"]
    assert all(recipient.recipient_type == "admin" for recipient in recipients)
    assert all(recipient.metadata == {"role": "admin"} for recipient in recipients)


def test_no_admins_is_not_a_failure(resolver) -> None:
    assert resolver.resolve(make_request(recipient_types=["admins"])) == []


def test_admin_lookup_failure_falls_back_to_well_known_admin(session) -> None:
    resolver = RecipientResolver(
        BrokenDirectory(),
        ProjectRepository(session),
        fallback_admin=FallbackAdmin(user_id="root", email="root@x.com", name="Root"),
    )

    recipients = resolver.resolve(make_request(recipient_types=["admins"]))

    assert len(recipients) == 1
    assert recipients[0].user_id == "root"
    assert recipients[0].email == "root@x.com"
    assert recipients[0].recipient_type == "admin"
    assert recipients[0].metadata["source"] == "fallback"


def test_workflow_participants_come_from_context(session, resolver) -> None:
    save_user(session, "u1", "u1@x.com", name="One")
    save_user(session, "u2", "u2@x.com", name="Two")

    recipients = resolver.resolve(
        make_request(
            recipient_types=["workflow_participants"],
            context={"participant_ids": ["u1", "ghost", "u2"]},
        )
    )

    assert [recipient.user_id for recipient in recipients] == ["u1", "u2"]
    assert recipients[0].recipient_type == "workflow_participant"
    assert recipients[0].metadata == {"context": "workflow", "source": "context"}


def test_specific_users_are_matched_by_email(session, resolver) -> None:
    save_user(session, "u1", "u1@x.com")

    recipients = resolver.resolve(
        make_request(
            recipient_types=["specific_users"],
            context={"user_emails": ["u1@x.com", "nobody@x.com"]},
        )
    )

    assert len(recipients) == 1
    assert recipients[0].recipient_type == "specific_user"
    assert recipients[0].metadata == {"source": "database", "email_provided": "u1@x.com"}


def test_manual_recipient_prefers_stored_profile(session, resolver) -> None:
    save_user(session, "u1", "u1@x.com", name="Stored")

    [recipient] = resolver.resolve(
        make_request(
            entity_id="u1",
            recipient_types=["manual"],
            context={"recipient": {"email": "inline@x.com"}},
        )
    )

    assert recipient.email == "u1@x.com"
    assert recipient.metadata == {"source": "database", "entity_id": "u1"}


def test_manual_recipient_from_context(resolver) -> None:
    [recipient] = resolver.resolve(
        make_request(
            entity_id="u7",
            recipient_types=["manual"],
            context={"recipient": {"email": "u7@x.com", "name": "Seven", "phone": "11912345678"}},
        )
    )

    assert recipient.user_id == "u7"
    assert recipient.email == "u7@x.com"
    assert recipient.phone == "11912345678"
    assert recipient.metadata == {"source": "context", "entity_id": "u7"}


def test_manual_recipient_without_data_uses_placeholder(resolver) -> None:
    [recipient] = resolver.resolve(make_request(entity_id="u8", recipient_types=["manual"]))

    assert recipient.email == "u8@example.com"
    assert recipient.name == "User u8"
    assert recipient.metadata["source"] == "fallback"


def test_manual_lookup_failure_yields_error_recipient(session) -> None:
    resolver = RecipientResolver(BrokenDirectory(), ProjectRepository(session))

    [recipient] = resolver.resolve(make_request(entity_id="u9", recipient_types=["manual"]))

    assert recipient.name == "Error Recipient"
    assert recipient.email == "u9@error.example.com"


def test_failing_strategy_does_not_abort_others(session) -> None:
    resolver = RecipientResolver(BrokenDirectory(), ProjectRepository(session))
    save_project(session, "p1", "u1", "u1@x.com")

    recipients = resolver.resolve(
        make_request(
            recipient_types=["project_owner", "workflow_participants", "admins"],
            context={"participant_ids": ["u1"]},
        )
    )

    assert [recipient.recipient_type for recipient in recipients] == ["admin"]


def test_unknown_tokens_are_skipped_and_order_is_kept(session, resolver, caplog) -> None:
    save_project(session, "p1", "u1", "u1@x.com")
    save_user(session, "a1", "a1@x.com", roles=["admin"])

    with caplog.at_level("WARNING"):
        recipients = resolver.resolve(
            make_request(recipient_types=["admins", "everyone", "project_owner", "admins"])
        )

    assert [recipient.user_id for recipient in recipients] == ["a1", "u1", "a1"]
    assert "Unknown recipient type: everyone" in caplog.text


class CountingDirectory:
    def __init__(self, session) -> None:
        self.inner = UserDirectory(session)
        self.admin_lookups = 0

    def find_admins(self):
        self.admin_lookups += 1
        return self.inner.find_admins()


def test_resolution_cache_reuses_results_until_expiry(session) -> None:
    now = [0.0]
    cache = ResolutionCache(30, clock=lambda: now[0])
    directory = CountingDirectory(session)
    resolver = RecipientResolver(directory, ProjectRepository(session), cache=cache)
    save_user(session, "a1", "a1@x.com", roles=["admin"])
    request = make_request(recipient_types=["admins"])

    first = resolver.resolve(request)
    second = resolver.resolve(request)
    now[0] = 31.0
    third = resolver.resolve(request)

    assert directory.admin_lookups == 2
    assert [r.user_id for r in first] == [r.user_id for r in second] == [r.user_id for r in third]


def test_disabled_resolution_cache_stores_nothing() -> None:
    cache = ResolutionCache(0)
    cache.put("key", [])

    assert cache.enabled is False
    assert cache.get("key") is None


def test_resolution_cache_drops_expired_entries_when_storing() -> None:
    now = [0.0]
    cache = ResolutionCache(30, max_entries=100_000, clock=lambda: now[0])

    for index in range(2_000):
        now[0] = index * 0.1
        cache.put(f"request-{index}", [])

    assert 299 <= len(cache) <= 301
    assert cache.get("request-0") is None
    assert cache.get("request-1999") == []


def test_resolution_cache_evicts_oldest_entry_when_full() -> None:
    cache = ResolutionCache(30, max_entries=2, clock=lambda: 0.0)

    cache.put("first", [])
    cache.put("second", [])
    cache.put("third", [])

    assert len(cache) == 2
    assert cache.get("first") is None
    assert cache.get("second") == [] and cache.get("third") == []


def test_failure_outside_strategies_raises_resolution_error(resolver, monkeypatch) -> None:
    def explode(strategy, request):
        raise KeyError(strategy)

    monkeypatch.setattr(resolver, "_resolve_strategy", explode)

    with pytest.raises(RecipientResolutionError) as excinfo:
        resolver.resolve(make_request())

    assert excinfo.value.code == "RECIPIENT_RESOLUTION_ERROR"
