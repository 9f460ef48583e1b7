"""Tests for the Keycloak admin client using an in-memory HTTP transport."""

from __future__ import annotations

import httpx
import pytest

from notification_engine.infrastructure.identity import KeycloakClient

ADMIN_URL = "https://sso.example.com/admin/realms/apporte"
TOKEN_URL = "https://sso.example.com/realms/apporte/protocol/openid-connect/token"


class FakeKeycloak:
    def __init__(self) -> None:
        self.token_requests = 0
        self.token_status = 200
        self.users = {
            "u1": {
                "id": "u1",
                "username": "ana",
                "email": "ana@x.com",
                "firstName": "Ana",
                "lastName": "Souza",
                "attributes": {"phoneNumber": ["11987654321"]},
            },
            "u2": {"id": "u2", "username": "bot", "email": "bot@x.com"},
        }

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url == TOKEN_URL:
            self.token_requests += 1
            if self.token_status != 200:
                return httpx.Response(self.token_status, text="invalid_grant")
            return httpx.Response(200, json={"access_token": "admin-token", "expires_in": 300})

        assert request.headers["Authorization"] == "Bearer admin-token"
        path = url.removeprefix(f"{ADMIN_URL}/users/")
        if path.endswith("/role-mappings/realm"):
            return httpx.Response(200, json=[{"name": "admin"}, {"name": "offline_access"}])
        if path in self.users:
            return httpx.Response(200, json=self.users[path])
        return httpx.Response(404, json={"error": "User not found"})


@pytest.fixture()
def keycloak() -> FakeKeycloak:
    return FakeKeycloak()


@pytest.fixture()
def client(keycloak: FakeKeycloak) -> KeycloakClient:
    return KeycloakClient(
        admin_url=ADMIN_URL,
        username="svc",
        password="secret",
        http_client=httpx.Client(transport=httpx.MockTransport(keycloak)),
    )


def test_token_url_is_derived_from_admin_url(client: KeycloakClient) -> None:
    assert client.token_url == TOKEN_URL


def test_get_user_maps_profile_and_roles(client: KeycloakClient, keycloak: FakeKeycloak) -> None:
    user = client.get_user("u1")
    client.get_user("u2")

    assert user.id == "u1"
    assert user.email == "ana@x.com"
    assert user.name == "Ana Souza"
    assert user.phone == "11987654321"
    assert user.roles == ["admin", "offline_access"]
    assert keycloak.token_requests == 1


def test_name_falls_back_to_username(client: KeycloakClient) -> None:
    user = client.get_user("u2")

    assert user.name == "bot"
    assert user.phone is None


def test_unknown_user_returns_none(client: KeycloakClient) -> None:
    assert client.get_user("ghost") is None


def test_token_failure_returns_none(client: KeycloakClient, keycloak: FakeKeycloak, caplog) -> None:
    keycloak.token_status = 401

    with caplog.at_level("ERROR"):
        assert client.get_user("u1") is None

    assert "Failed to get admin token: HTTP 401" in caplog.text


def test_unconfigured_client_does_not_call_keycloak(keycloak: FakeKeycloak) -> None:
    client = KeycloakClient(
        admin_url=None,
        username=None,
        password=None,
        http_client=httpx.Client(transport=httpx.MockTransport(keycloak)),
    )

    assert client.is_configured is False
    assert client.get_user("u1") is None
    assert keycloak.token_requests == 0
