"""Process-wide access token cache with single-flight refresh."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_MARGIN = 60


@dataclass(frozen=True)
class AccessToken:
    """A bearer token and the monotonic time at which it expires."""

    value: str
    expires_at: float

    def is_valid(self, now: float, margin: float = 0.0) -> bool:
        return now < self.expires_at - margin


@dataclass(frozen=True)
class TokenGrant:
    """Result of one refresh-token exchange.

    ``refresh_token`` is set when the identity provider rotated it.
    """

    access_token: str
    expires_in: int
    refresh_token: str | None = None


class TokenCache:
    """Holds one access token in memory and refreshes it when expired.

    Concurrent callers that observe an expired token serialise on a lock
    and re-check after acquiring it, so only one exchange runs per expiry.
    The refresh token (rotated or not) is kept in memory only.
    """

    def __init__(
        self,
        refresh_token: str,
        expiry_margin: float = DEFAULT_EXPIRY_MARGIN,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialise an empty cache.

        Args:
            refresh_token: Refresh token used for the first exchange.
            expiry_margin: Seconds before expiry at which a token is treated as stale.
            clock: Monotonic clock, injectable for tests.
        """
        self._configured_refresh_token = refresh_token
        self._refresh_token = refresh_token
        self._expiry_margin = expiry_margin
        self._clock = clock
        self._token: AccessToken | None = None
        self._lock = threading.Lock()

    def get(self, exchange: Callable[[str], TokenGrant]) -> str:
        """Return a valid access token, calling ``exchange`` only when needed.

        Args:
            exchange: Performs the refresh-token exchange; receives the
                current refresh token.

        Returns:
            Access token string.

        Raises:
            Whatever ``exchange`` raises; the cached state is left unchanged.
        """
        token = self._token
        if token is not None and token.is_valid(self._clock(), self._expiry_margin):
            return token.value

        with self._lock:
            token = self._token
            if token is not None and token.is_valid(self._clock(), self._expiry_margin):
                return token.value

            grant = exchange(self._refresh_token)
            if grant.refresh_token:
                self._refresh_token = grant.refresh_token
            self._token = AccessToken(
                value=grant.access_token,
                expires_at=self._clock() + grant.expires_in,
            )
            logger.info("[TokenCache.get] refreshed access token; expires_in:%d", grant.expires_in)
            return grant.access_token

    @property
    def configured_refresh_token(self) -> str:
        """Refresh token the cache was created with, before any rotation."""
        return self._configured_refresh_token

    def invalidate(self) -> None:
        """Drop the cached access token so the next call refreshes."""
        with self._lock:
            self._token = None


_caches: dict[str, TokenCache] = {}
_caches_lock = threading.Lock()


def get_token_cache(
    key: str,
    refresh_token: str,
    expiry_margin: float = DEFAULT_EXPIRY_MARGIN,
) -> TokenCache:
    """Return the process-wide TokenCache for ``key``, creating it on first use.

    A cache created from a different configured refresh token is replaced,
    so a new ``GD_REFRESH_TOKEN`` takes effect without a worker restart.
    Tokens rotated by the identity provider do not count as a change.

    Args:
        key: Identity the token belongs to (tenant, client and user).
        refresh_token: Refresh token from configuration.
        expiry_margin: Seconds before expiry at which a token is refreshed.

    Returns:
        Shared TokenCache instance.
    """
    with _caches_lock:
        cache = _caches.get(key)
        if cache is None or cache.configured_refresh_token != refresh_token:
            if cache is not None:
                logger.info("[get_token_cache] configured refresh token changed; key:%s", key)
            cache = TokenCache(refresh_token, expiry_margin=expiry_margin)
            _caches[key] = cache
        return cache


def clear_token_caches() -> None:
    """Forget every cached token. Used by tests."""
    with _caches_lock:
        _caches.clear()
