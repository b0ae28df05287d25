# Serialized access-token refresh.
# Created: 2026-10-19
#
# Two requests from the same browser can carry the same refresh token. If the
# provider rotates refresh tokens, spending it twice logs the user out, so
# refreshes are serialized per refresh token and a fresh result is handed to
# whoever was waiting on the lock.

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from collections.abc import Callable

from storefront.auth.config import OAuthConfig
from storefront.auth.errors import NoRefreshTokenError
from storefront.auth.models import Session, TokenResponse
from storefront.auth.oauth import TokenClient
from storefront.auth.session import SessionStore

logger = logging.getLogger(__name__)

# How long a completed refresh is reused by concurrent callers (seconds)
RESULT_REUSE_WINDOW = 30.0


def _key(refresh_token: str) -> str:
    return hashlib.sha256(refresh_token.encode()).hexdigest()


class TokenRefresher:
    """Refreshes a session's access token at most once per refresh token."""

    def __init__(
        self,
        token_client: TokenClient,
        reuse_window: float = RESULT_REUSE_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.token_client = token_client
        self.reuse_window = reuse_window
        self._clock = clock
        self._locks: dict[str, asyncio.Lock] = {}
        # key -> callers holding or waiting on the lock
        self._users: dict[str, int] = {}
        self._results: dict[str, tuple[float, TokenResponse]] = {}

    def _prune(self) -> None:
        now = self._clock()
        stale = [k for k, (at, _) in self._results.items() if now - at > self.reuse_window]
        for k in stale:
            del self._results[k]

    async def refresh_tokens(self, refresh_token: str, config: OAuthConfig) -> TokenResponse:
        self._prune()
        key = _key(refresh_token)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                cached = self._results.get(key)
                if cached is not None and self._clock() - cached[0] <= self.reuse_window:
                    logger.debug("Reusing in-flight refresh result")
                    return cached[1]
                tokens = await self.token_client.refresh(
                    refresh_token=refresh_token,
                    client_id=config.client_id,
                    client_secret=config.client_secret,
                    token_endpoint=config.token_endpoint,
                )
                self._results[key] = (self._clock(), tokens)
                return tokens
        finally:
            self._release(key)

    def _release(self, key: str) -> None:
        # The lock goes once no caller holds or waits on it
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            del self._locks[key]

    async def refresh_session(self, store: SessionStore, config: OAuthConfig) -> Session:
        """Refresh and persist; keeps the old refresh/id token unless replaced.

        Raises NoRefreshTokenError or ExchangeError.
        """
        current = store.get_session()
        if not current.refresh_token:
            raise NoRefreshTokenError()

        tokens = await self.refresh_tokens(current.refresh_token, config)
        store.store_session(
            access_token=tokens.access_token,
            expires_in=tokens.expires_in,
            refresh_token=tokens.refresh_token or current.refresh_token,
            id_token=tokens.id_token or current.id_token,
        )
        logger.info("Session refreshed (rotated=%s)", tokens.refresh_token is not None)
        return store.get_session()
