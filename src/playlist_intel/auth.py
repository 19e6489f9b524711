"""Credentials for the YouTube Data API.

Two authentication paths exist: a static API key (public data scoped to a
channel) and an OAuth bearer token (the signed-in user's playlists,
including private ones). Both travel in one ``Credentials`` value so the
client handles them uniformly.

The consent flow itself is not handled here. A ``TokenSource`` is any
coroutine returning ``(access_token, expires_at)``; ``TokenCache`` only
decides when to call it again.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

TokenSource = Callable[[], Awaitable[tuple[str, float]]]

# Refresh this many seconds before the reported expiry.
EXPIRY_SKEW_SECONDS = 60.0


@dataclass(frozen=True)
class Credentials:
    """API key and/or bearer token. The token wins when both are present."""

    api_key: str | None = None
    bearer_token: str | None = None
    channel_id: str | None = None

    @property
    def has_token(self) -> bool:
        return bool(self.bearer_token)

    @property
    def has_key(self) -> bool:
        return bool(self.api_key)

    @property
    def is_usable(self) -> bool:
        return self.has_token or self.has_key

    @property
    def mode(self) -> str:
        if self.has_token:
            return "oauth"
        if self.has_key:
            return "api_key"
        return "none"

    def __repr__(self) -> str:
        return f"Credentials(mode={self.mode!r}, channel_id={self.channel_id!r})"


class TokenCache:
    """Caches a bearer token until shortly before its expiry timestamp."""

    def __init__(
        self,
        source: TokenSource | None = None,
        token: str | None = None,
        expires_at: float | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._source = source
        self._token = token
        self._expires_at = expires_at
        self._clock = clock

    def is_valid(self) -> bool:
        if not self._token:
            return False
        if self._expires_at is None:
            return True
        return self._clock() < self._expires_at - EXPIRY_SKEW_SECONDS

    def invalidate(self) -> None:
        self._token = None
        self._expires_at = None

    async def get_token(self) -> str | None:
        """Return a usable token, refreshing from the source when expired.

        Returns None when the cached token is unusable and there is no
        source to refresh from.
        """
        if self.is_valid():
            return self._token
        if self._source is None:
            if self._token:
                logger.warning("Cached access token expired and no token source is configured")
            return None

        logger.debug("Requesting a fresh access token")
        self._token, self._expires_at = await self._source()
        return self._token


async def resolve_credentials(
    api_key: str | None = None,
    channel_id: str | None = None,
    token_cache: TokenCache | None = None,
) -> Credentials:
    """Combine a static key with whatever token the cache can currently supply."""
    bearer_token = await token_cache.get_token() if token_cache else None
    return Credentials(api_key=api_key, bearer_token=bearer_token, channel_id=channel_id)
