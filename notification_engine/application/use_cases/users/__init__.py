"""Use cases for reading notification recipients."""

from .user_directory import DEFAULT_CACHE_TTL, IdentityProvider, UserDirectory

__all__ = ["DEFAULT_CACHE_TTL", "IdentityProvider", "UserDirectory"]
