# Session store: OAuth transient state + session tokens in HTTP-only cookies.
# Created: 2026-10-19
#
# The browser's cookie set *is* the session; the server keeps no copy.
# SessionStore implements the protocol operations on top of three primitives
# (read / write / delete one cookie). CookieSessionStore backs them with the
# current request and buffers writes until apply(response); MemorySessionStore
# backs them with a dict for protocol tests.

from __future__ import annotations

import hmac
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from starlette.requests import Request
from starlette.responses import Response

from storefront.auth.models import OAuthTransientState, Session, now_ms

logger = logging.getLogger(__name__)

OAUTH_STATE_COOKIE = "oauth_state"
OAUTH_NONCE_COOKIE = "oauth_nonce"
ACCESS_TOKEN_COOKIE = "customer_access_token"
REFRESH_TOKEN_COOKIE = "customer_refresh_token"
ID_TOKEN_COOKIE = "customer_id_token"
EXPIRES_AT_COOKIE = "token_expires_at"

OAUTH_STATE_MAX_AGE = 60 * 10  # 10 minutes
REFRESH_TOKEN_MAX_AGE = 60 * 60 * 24 * 90  # 90 days

SESSION_COOKIES = (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    ID_TOKEN_COOKIE,
    EXPIRES_AT_COOKIE,
)
TRANSIENT_COOKIES = (OAUTH_STATE_COOKIE, OAUTH_NONCE_COOKIE)


@dataclass(frozen=True)
class CookiePolicy:
    """Attributes shared by every auth cookie."""

    secure: bool = True
    samesite: str = "lax"
    path: str = "/"
    httponly: bool = True


class SessionStore(ABC):
    """Protocol operations over a per-request cookie jar."""

    def __init__(self, clock: Callable[[], int] = now_ms):
        self._clock = clock

    @abstractmethod
    def _read(self, name: str) -> str | None: ...

    @abstractmethod
    def _write(self, name: str, value: str, max_age: int) -> None: ...

    @abstractmethod
    def _delete(self, name: str) -> None: ...

    # -- transient OAuth state ------------------------------------------------

    def store_oauth_state(self, state: str, nonce: str) -> None:
        """Persist the pending attempt, replacing any earlier one."""
        self._write(OAUTH_STATE_COOKIE, state, OAUTH_STATE_MAX_AGE)
        self._write(OAUTH_NONCE_COOKIE, nonce, OAUTH_STATE_MAX_AGE)
        logger.debug("Stored OAuth state and nonce")

    def get_oauth_state(self) -> OAuthTransientState | None:
        state = self._read(OAUTH_STATE_COOKIE)
        if not state:
            return None
        return OAuthTransientState(state=state, nonce=self._read(OAUTH_NONCE_COOKIE) or "")

    def verify_oauth_state(self, received_state: str | None) -> bool:
        """Exact comparison against the stored state. Never mutates."""
        stored = self._read(OAUTH_STATE_COOKIE)
        if not stored:
            logger.warning("OAuth state not found in cookies")
            return False
        if not received_state:
            return False
        valid = hmac.compare_digest(stored.encode(), received_state.encode())
        logger.info("OAuth state verification: %s", "ok" if valid else "FAILED")
        return valid

    def clear_oauth_state(self) -> None:
        for name in TRANSIENT_COOKIES:
            self._delete(name)
        logger.debug("Cleared OAuth state cookies")

    # -- session --------------------------------------------------------------

    def store_session(
        self,
        access_token: str,
        expires_in: int,
        refresh_token: str | None = None,
        id_token: str | None = None,
    ) -> int:
        """Write a complete session, replacing whatever was there.

        Optional tokens that are not given are deleted so no credential from a
        previous login survives. Returns the computed ``expires_at`` (epoch ms).
        """
        if not access_token:
            raise ValueError("access_token is required")
        if expires_in <= 0:
            raise ValueError("expires_in must be positive")

        expires_at = self._clock() + expires_in * 1000

        self._write(ACCESS_TOKEN_COOKIE, access_token, expires_in)
        self._write(EXPIRES_AT_COOKIE, str(expires_at), expires_in)

        if refresh_token:
            self._write(REFRESH_TOKEN_COOKIE, refresh_token, REFRESH_TOKEN_MAX_AGE)
        else:
            self._delete(REFRESH_TOKEN_COOKIE)

        if id_token:
            self._write(ID_TOKEN_COOKIE, id_token, expires_in)
        else:
            self._delete(ID_TOKEN_COOKIE)

        logger.info(
            "Stored session (has_refresh_token=%s, has_id_token=%s, expires_in=%s)",
            bool(refresh_token),
            bool(id_token),
            expires_in,
        )
        return expires_at

    def get_session(self) -> Session:
        raw_expiry = self._read(EXPIRES_AT_COOKIE)
        expires_at: int | None = None
        if raw_expiry:
            try:
                expires_at = int(raw_expiry)
            except ValueError:
                logger.warning("Ignoring malformed %s cookie", EXPIRES_AT_COOKIE)
        return Session(
            access_token=self._read(ACCESS_TOKEN_COOKIE) or None,
            refresh_token=self._read(REFRESH_TOKEN_COOKIE) or None,
            id_token=self._read(ID_TOKEN_COOKIE) or None,
            expires_at=expires_at,
        )

    def is_session_valid(self) -> bool:
        return self.get_session().is_valid(self._clock())

    def clear_session(self) -> None:
        """Delete all session cookies. Safe to call with no session."""
        for name in SESSION_COOKIES:
            self._delete(name)
        logger.debug("Cleared session cookies")


@dataclass
class _StoredCookie:
    value: str
    max_age: int
    written_at: int


class MemorySessionStore(SessionStore):
    """Dict-backed store that honours max_age against the injected clock."""

    def __init__(self, clock: Callable[[], int] = now_ms):
        super().__init__(clock)
        self.cookies: dict[str, _StoredCookie] = {}

    def _read(self, name: str) -> str | None:
        cookie = self.cookies.get(name)
        if cookie is None:
            return None
        if self._clock() >= cookie.written_at + cookie.max_age * 1000:
            del self.cookies[name]
            return None
        return cookie.value

    def _write(self, name: str, value: str, max_age: int) -> None:
        self.cookies[name] = _StoredCookie(value, max_age, self._clock())

    def _delete(self, name: str) -> None:
        self.cookies.pop(name, None)

    def max_age(self, name: str) -> int | None:
        cookie = self.cookies.get(name)
        return cookie.max_age if cookie else None


class CookieSessionStore(SessionStore):
    """Reads from the incoming request, buffers writes for the outgoing response.

    Reads observe writes made earlier in the same request. ``apply()`` sets
    every buffered cookie on one response, so a handler's cookie changes reach
    the browser together.
    """

    def __init__(
        self,
        request_cookies: dict[str, str],
        policy: CookiePolicy | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        super().__init__(clock)
        self._incoming = dict(request_cookies)
        self.policy = policy or CookiePolicy()
        # name -> (value, max_age); value None means delete
        self._pending: dict[str, tuple[str | None, int]] = {}

    @classmethod
    def from_request(
        cls, request: Request, policy: CookiePolicy | None = None
    ) -> CookieSessionStore:
        return cls(request.cookies, policy)

    def _read(self, name: str) -> str | None:
        if name in self._pending:
            return self._pending[name][0]
        return self._incoming.get(name)

    def _write(self, name: str, value: str, max_age: int) -> None:
        self._pending[name] = (value, max_age)

    def _delete(self, name: str) -> None:
        self._pending[name] = (None, 0)

    @property
    def has_pending(self) -> bool:
        return bool(self._pending)

    def apply(self, response: Response) -> Response:
        """Flush buffered cookie writes onto *response*."""
        p = self.policy
        for name, (value, max_age) in self._pending.items():
            if value is None:
                response.delete_cookie(
                    key=name,
                    path=p.path,
                    secure=p.secure,
                    httponly=p.httponly,
                    samesite=p.samesite,
                )
            else:
                response.set_cookie(
                    key=name,
                    value=value,
                    max_age=max_age,
                    path=p.path,
                    secure=p.secure,
                    httponly=p.httponly,
                    samesite=p.samesite,
                )
        self._pending.clear()
        return response
