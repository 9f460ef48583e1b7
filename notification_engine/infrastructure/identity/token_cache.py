"""Process-wide cache for the identity provider's admin access token."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessToken:
    """Bearer token issued by the identity provider."""

    access_token: str
    expires_in: int

    def is_valid(self) -> bool:
        return bool(self.access_token) and self.expires_in > 0


@dataclass
class _Refresh:
    done: threading.Event = field(default_factory=threading.Event)
    token: AccessToken | None = None


class TokenCache:
    """Cache a token until shortly before it expires.

    Only one refresh runs at a time: callers arriving while a refresh is in
    flight wait for it and reuse its outcome instead of requesting another
    token.
    """

    def __init__(
        self,
        fetch: Callable[[], AccessToken | None],
        *,
        safety_margin_seconds: float = 60.0,
        wait_timeout_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self._safety_margin = safety_margin_seconds
        self._wait_timeout = wait_timeout_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._token: AccessToken | None = None
        self._expires_at = 0.0
        self._inflight: _Refresh | None = None

    def get(self) -> str | None:
        """Return a valid access token, refreshing it when needed."""

        with self._lock:
            if self._token is not None and self._clock() < self._expires_at:
                return self._token.access_token
            refresh = self._inflight
            leader = refresh is None
            if leader:
                refresh = self._inflight = _Refresh()

        if not leader:
            if not refresh.done.wait(self._wait_timeout):
                logger.warning("Timed out waiting for identity provider token refresh")
                return None
            return refresh.token.access_token if refresh.token else None

        token: AccessToken | None = None
        try:
            token = self._fetch()
        finally:
            with self._lock:
                if token is not None and token.is_valid():
                    self._token = token
                    # Short-lived tokens keep at least half of their lifetime.
                    margin = min(self._safety_margin, token.expires_in / 2)
                    self._expires_at = self._clock() + token.expires_in - margin
                else:
                    token = None
                refresh.token = token
                self._inflight = None
            refresh.done.set()

        return token.access_token if token else None

    def clear(self) -> None:
        """Forget the cached token."""

        with self._lock:
            self._token = None
            self._expires_at = 0.0
        logger.info("Identity provider token cache cleared")


__all__ = ["AccessToken", "TokenCache"]
