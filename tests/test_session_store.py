# Tests for the session store (in-memory and cookie-backed).
# Created: 2026-10-19

import time

import pytest
from starlette.responses import Response

from storefront.auth.models import Session
from storefront.auth.oauth import generate_nonce, generate_state
from storefront.auth.session import (
    ACCESS_TOKEN_COOKIE,
    EXPIRES_AT_COOKIE,
    ID_TOKEN_COOKIE,
    OAUTH_NONCE_COOKIE,
    OAUTH_STATE_COOKIE,
    OAUTH_STATE_MAX_AGE,
    REFRESH_TOKEN_COOKIE,
    REFRESH_TOKEN_MAX_AGE,
    CookiePolicy,
    CookieSessionStore,
    MemorySessionStore,
)


class Clock:
    """Manually advanced epoch-ms clock."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store(clock):
    return MemorySessionStore(clock=clock)


class TestOAuthState:
    def test_verify_after_store(self, store):
        for _ in range(20):
            state, nonce = generate_state(), generate_nonce()
            store.store_oauth_state(state, nonce)
            assert store.verify_oauth_state(state) is True

    def test_verify_does_not_mutate(self, store):
        store.store_oauth_state("s1", "n1")
        store.verify_oauth_state("s1")
        store.verify_oauth_state("wrong")
        assert store.get_oauth_state().state == "s1"

    def test_mismatch(self, store):
        store.store_oauth_state("s1", "n1")
        assert store.verify_oauth_state("s2") is False

    def test_nothing_stored(self, store):
        assert store.verify_oauth_state("anything") is False

    @pytest.mark.parametrize("received", [None, ""])
    def test_empty_received_state(self, store, received):
        store.store_oauth_state("s1", "n1")
        assert store.verify_oauth_state(received) is False

    def test_second_attempt_overwrites_first(self, store):
        store.store_oauth_state("first", "n1")
        store.store_oauth_state("second", "n2")
        assert store.verify_oauth_state("first") is False
        assert store.verify_oauth_state("second") is True
        assert store.get_oauth_state().nonce == "n2"

    def test_ttl(self, store, clock):
        store.store_oauth_state("s1", "n1")
        assert store.max_age(OAUTH_STATE_COOKIE) == OAUTH_STATE_MAX_AGE == 600
        assert store.max_age(OAUTH_NONCE_COOKIE) == 600
        clock.advance(601)
        assert store.verify_oauth_state("s1") is False
        assert store.get_oauth_state() is None

    def test_clear(self, store):
        store.store_oauth_state("s1", "n1")
        store.clear_oauth_state()
        assert store.get_oauth_state() is None
        assert store.verify_oauth_state("s1") is False


class TestSession:
    def test_empty(self, store):
        assert store.get_session() == Session()
        assert store.get_session().is_empty
        assert store.is_session_valid() is False

    def test_store_and_get(self, store, clock):
        expires_at = store.store_session(
            access_token="a", expires_in=3600, refresh_token="r", id_token="i"
        )
        session = store.get_session()
        assert session.access_token == "a"
        assert session.refresh_token == "r"
        assert session.id_token == "i"
        assert session.expires_at == expires_at == clock.now + 3_600_000
        assert store.is_session_valid() is True

    def test_expires_at_against_wall_clock(self):
        real = MemorySessionStore()
        real.store_session(access_token="a", expires_in=3600)
        expected = time.time() * 1000 + 3_600_000
        assert abs(real.get_session().expires_at - expected) < 1000

    def test_cookie_lifetimes(self, store):
        store.store_session(access_token="a", expires_in=120, refresh_token="r", id_token="i")
        assert store.max_age(ACCESS_TOKEN_COOKIE) == 120
        assert store.max_age(ID_TOKEN_COOKIE) == 120
        assert store.max_age(EXPIRES_AT_COOKIE) == 120
        assert store.max_age(REFRESH_TOKEN_COOKIE) == REFRESH_TOKEN_MAX_AGE == 90 * 24 * 3600

    def test_expired(self, store, clock):
        store.store_session(access_token="a", expires_in=60)
        clock.advance(59)
        assert store.is_session_valid() is True
        clock.advance(1)
        assert store.is_session_valid() is False

    def test_access_token_without_expiry_is_invalid(self):
        assert Session(access_token="a").is_valid() is False
        cookie_store = CookieSessionStore({ACCESS_TOKEN_COOKIE: "a"})
        assert cookie_store.is_session_valid() is False

    def test_past_expiry_with_token_is_invalid(self):
        past = int(time.time() * 1000) - 1
        assert Session(access_token="a", expires_at=past).is_valid() is False

    def test_malformed_expiry_is_invalid(self):
        cookie_store = CookieSessionStore({ACCESS_TOKEN_COOKIE: "a", EXPIRES_AT_COOKIE: "soon"})
        assert cookie_store.get_session().expires_at is None
        assert cookie_store.is_session_valid() is False

    def test_new_login_replaces_optional_tokens(self, store):
        store.store_session(access_token="a1", expires_in=60, refresh_token="r1", id_token="i1")
        store.store_session(access_token="a2", expires_in=60)
        session = store.get_session()
        assert session.access_token == "a2"
        assert session.refresh_token is None
        assert session.id_token is None

    def test_rejects_bad_input(self, store):
        with pytest.raises(ValueError):
            store.store_session(access_token="", expires_in=60)
        with pytest.raises(ValueError):
            store.store_session(access_token="a", expires_in=0)

    def test_clear_is_idempotent(self, store):
        store.store_session(access_token="a", expires_in=60, refresh_token="r", id_token="i")
        store.clear_session()
        first = store.get_session()
        store.clear_session()
        assert store.get_session() == first == Session()

    def test_clear_without_session(self, store):
        store.clear_session()
        assert store.get_session() == Session()

    def test_clear_session_keeps_transient_state(self, store):
        store.store_oauth_state("s", "n")
        store.store_session(access_token="a", expires_in=60)
        store.clear_session()
        assert store.verify_oauth_state("s") is True


def _set_cookie_headers(response: Response) -> dict[str, str]:
    headers = {}
    for raw in response.headers.getlist("set-cookie"):
        name = raw.split("=", 1)[0]
        headers[name] = raw
    return headers


class TestCookieSessionStore:
    def test_reads_incoming_cookies(self):
        store = CookieSessionStore(
            {ACCESS_TOKEN_COOKIE: "a", EXPIRES_AT_COOKIE: str(int(time.time() * 1000) + 60_000)}
        )
        assert store.get_session().access_token == "a"
        assert store.is_session_valid() is True

    def test_reads_see_pending_writes(self):
        store = CookieSessionStore({OAUTH_STATE_COOKIE: "old"})
        store.store_oauth_state("new", "n")
        assert store.verify_oauth_state("new") is True
        store.clear_oauth_state()
        assert store.get_oauth_state() is None

    def test_apply_sets_all_cookies_on_one_response(self):
        store = CookieSessionStore({}, CookiePolicy(secure=True))
        store.store_session(access_token="a", expires_in=300, refresh_token="r", id_token="i")
        response = store.apply(Response())
        cookies = _set_cookie_headers(response)

        assert set(cookies) == {
            ACCESS_TOKEN_COOKIE,
            EXPIRES_AT_COOKIE,
            REFRESH_TOKEN_COOKIE,
            ID_TOKEN_COOKIE,
        }
        for raw in cookies.values():
            assert "HttpOnly" in raw
            assert "Secure" in raw
            assert "SameSite=lax" in raw
            assert "Path=/" in raw
            assert "Max-Age=" in raw
        assert "Max-Age=300" in cookies[ACCESS_TOKEN_COOKIE]
        assert f"Max-Age={REFRESH_TOKEN_MAX_AGE}" in cookies[REFRESH_TOKEN_COOKIE]
        assert store.has_pending is False

    def test_not_secure_in_development(self):
        store = CookieSessionStore({}, CookiePolicy(secure=False))
        store.store_oauth_state("s", "n")
        cookies = _set_cookie_headers(store.apply(Response()))
        assert "Secure" not in cookies[OAUTH_STATE_COOKIE]
        assert "Max-Age=600" in cookies[OAUTH_STATE_COOKIE]

    def test_clear_session_emits_deletions(self):
        store = CookieSessionStore({ACCESS_TOKEN_COOKIE: "a", ID_TOKEN_COOKIE: "i"})
        store.clear_session()
        cookies = _set_cookie_headers(store.apply(Response()))
        for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, ID_TOKEN_COOKIE, EXPIRES_AT_COOKIE):
            assert "Max-Age=0" in cookies[name]
