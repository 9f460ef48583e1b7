"""Identity provider integration."""

from .keycloak import KeycloakClient
from .token_cache import AccessToken, TokenCache

__all__ = ["AccessToken", "KeycloakClient", "TokenCache"]
