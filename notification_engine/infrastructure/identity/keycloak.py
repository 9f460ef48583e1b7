"""Client for the Keycloak admin REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from notification_engine.config import Settings
from notification_engine.domain.entities import IdentityUser

from .token_cache import AccessToken, TokenCache

logger = logging.getLogger(__name__)

_PHONE_ATTRIBUTES = ("phoneNumber", "phone_number", "phone")


class KeycloakClient:
    """Fetch user profiles from Keycloak using an admin service account."""

    def __init__(
        self,
        *,
        admin_url: str | None,
        username: str | None,
        password: str | None,
        client_id: str = "admin-cli",
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._admin_url = (admin_url or "").rstrip("/")
        self._username = username
        self._password = password
        self._client_id = client_id
        self._http = http_client or httpx.Client(timeout=timeout)
        self._owns_http = http_client is None
        self.token_cache = TokenCache(self._request_token)

    @classmethod
    def from_settings(cls, settings: Settings) -> "KeycloakClient":
        return cls(
            admin_url=settings.keycloak_admin_url,
            username=settings.keycloak_admin_username,
            password=settings.keycloak_admin_password,
            client_id=settings.keycloak_client_id,
            timeout=settings.keycloak_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._admin_url and self._username and self._password)

    @property
    def token_url(self) -> str:
        realm_url = self._admin_url.replace("/admin/realms/", "/realms/", 1)
        return f"{realm_url}/protocol/openid-connect/token"

    def get_user(self, user_id: str) -> IdentityUser | None:
        """Return the Keycloak user ``user_id`` or ``None`` when unavailable."""

        if not self.is_configured:
            logger.debug("Keycloak is not configured; skipping lookup for %s", user_id)
            return None

        token = self.token_cache.get()
        if token is None:
            logger.warning("Cannot get admin token for Keycloak")
            return None

        headers = {"Authorization": f"Bearer {token}"}
        try:
            response = self._http.get(f"{self._admin_url}/users/{user_id}", headers=headers)
            if response.status_code != 200:
                logger.warning(
                    "Failed to get user %s from Keycloak: HTTP %s",
                    user_id,
                    response.status_code,
                )
                return None
            roles = self._get_realm_roles(user_id, headers)
            return _to_identity_user(response.json(), roles)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error fetching user %s from Keycloak: %s", user_id, exc)
            return None

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def _get_realm_roles(self, user_id: str, headers: dict[str, str]) -> list[str]:
        response = self._http.get(
            f"{self._admin_url}/users/{user_id}/role-mappings/realm", headers=headers
        )
        if response.status_code != 200:
            logger.debug(
                "Realm roles for %s unavailable: HTTP %s", user_id, response.status_code
            )
            return []
        return [
            item["name"]
            for item in response.json()
            if isinstance(item, dict) and item.get("name")
        ]

    def _request_token(self) -> AccessToken | None:
        form = {
            "client_id": self._client_id,
            "username": self._username,
            "password": self._password,
            "grant_type": "password",
        }
        try:
            response = self._http.post(self.token_url, data=form)
        except httpx.HTTPError as exc:
            logger.error("Error getting admin token: %s", exc)
            return None

        if response.status_code != 200:
            logger.error(
                "Failed to get admin token: HTTP %s: %s",
                response.status_code,
                response.text,
            )
            return None

        try:
            body = response.json()
        except ValueError:
            logger.error("Invalid token response from Keycloak")
            return None

        token = AccessToken(
            access_token=str(body.get("access_token") or ""),
            expires_in=int(body.get("expires_in") or 0),
        )
        if not token.is_valid():
            logger.error("Invalid token response from Keycloak")
            return None
        return token


def _to_identity_user(data: dict[str, Any], roles: list[str]) -> IdentityUser:
    first = (data.get("firstName") or "").strip()
    last = (data.get("lastName") or "").strip()
    full_name = " ".join(part for part in (first, last) if part) or data.get("username")

    phone = None
    attributes = data.get("attributes") or {}
    for key in _PHONE_ATTRIBUTES:
        values = attributes.get(key)
        if isinstance(values, list) and values:
            phone = str(values[0])
            break
        if isinstance(values, str) and values:
            phone = values
            break

    return IdentityUser(
        id=str(data.get("id")),
        email=data.get("email"),
        name=full_name,
        phone=phone,
        roles=roles,
    )


__all__ = ["KeycloakClient"]
