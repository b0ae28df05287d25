# Auth data models.
# Created: 2026-10-19

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from storefront.auth.errors import ExchangeError


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class OAuthTransientState:
    """One in-flight authorization attempt (lives for a single round trip)."""

    state: str
    nonce: str


@dataclass(frozen=True)
class Session:
    """Credential set carried by the browser's session cookies.

    All fields are optional because a read may find any subset of cookies.
    ``expires_at`` is the absolute access-token expiry in epoch milliseconds.
    """

    access_token: str | None = None
    refresh_token: str | None = None
    id_token: str | None = None
    expires_at: int | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.access_token or self.refresh_token or self.id_token or self.expires_at)

    def is_valid(self, now: int | None = None) -> bool:
        """True iff an access token is present and not yet expired.

        An access token without an expiry is rejected.
        """
        if not self.access_token or self.expires_at is None:
            return False
        current = now_ms() if now is None else now
        return current < self.expires_at


@dataclass(frozen=True)
class TokenResponse:
    """Successful token endpoint response."""

    access_token: str
    expires_in: int
    refresh_token: str | None = None
    id_token: str | None = None
    token_type: str = "Bearer"

    @classmethod
    def from_payload(cls, data: Any) -> TokenResponse:
        """Validate a decoded token endpoint JSON body.

        Raises ExchangeError when ``access_token`` or a positive integer
        ``expires_in`` is missing.
        """
        if not isinstance(data, dict):
            raise ExchangeError("Token exchange failed: unexpected response body")

        access_token = data.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ExchangeError("Token exchange failed: response missing access_token")

        expires_in = data.get("expires_in")
        try:
            expires_in = int(expires_in)
        except (TypeError, ValueError):
            raise ExchangeError("Token exchange failed: response missing expires_in") from None
        if expires_in <= 0:
            raise ExchangeError("Token exchange failed: non-positive expires_in")

        return cls(
            access_token=access_token,
            expires_in=expires_in,
            refresh_token=data.get("refresh_token") or None,
            id_token=data.get("id_token") or None,
            token_type=data.get("token_type") or "Bearer",
        )
