# Login / callback / logout orchestration.
# Created: 2026-10-19
#
# These classes hold the protocol logic and know nothing about HTTP. They
# raise AuthError subclasses; the route layer turns those into redirects or
# JSON bodies.
#
# Transient-state policy for the callback:
#   success                      -> cleared (after the session is written)
#   provider error, state valid  -> cleared (the attempt was abandoned)
#   provider error, state bad    -> kept
#   missing params / CSRF        -> kept (a forged callback cannot cancel a real login)
#   exchange failure             -> kept (user may re-land on the callback within the TTL)

from __future__ import annotations

import logging
import urllib.parse
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from storefront.auth.config import OAuthConfig
from storefront.auth.errors import (
    AuthError,
    ConfigurationError,
    CsrfError,
    MissingParametersError,
    ProviderError,
)
from storefront.auth.models import TokenResponse
from storefront.auth.oauth import (
    TokenClient,
    build_authorization_url,
    generate_nonce,
    generate_state,
)
from storefront.auth.session import SessionStore

logger = logging.getLogger(__name__)


class ResponseMode(str, Enum):
    """How the caller wants the login result delivered."""

    REDIRECT = "redirect"
    JSON = "json"

    @classmethod
    def from_accept(cls, accept: str | None) -> ResponseMode:
        if accept and "application/json" in accept.lower():
            return cls.JSON
        return cls.REDIRECT


@dataclass(frozen=True)
class Redirect:
    url: str


@dataclass(frozen=True)
class JsonReply:
    body: dict[str, Any]
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)


Outcome = Redirect | JsonReply


def error_redirect_url(base_url: str, message: str) -> str:
    """``<base>/account?error=<message>`` with spaces as %20 and parentheses literal."""
    quoted = urllib.parse.quote(message, safe="()")
    return f"{base_url.rstrip('/')}/account?error={quoted}"


def login_failure(
    mode: ResponseMode, base_url: str, message: str, status_code: int = 500
) -> Outcome:
    if mode is ResponseMode.JSON:
        return JsonReply({"error": message, "success": False}, status_code=status_code)
    return Redirect(error_redirect_url(base_url, message))


class LoginInitiator:
    """Starts the authorization code flow."""

    def __init__(self, config: OAuthConfig, store: SessionStore):
        self.config = config
        self.store = store

    def initiate(self, mode: ResponseMode = ResponseMode.REDIRECT) -> Outcome:
        cfg = self.config
        state = generate_state()
        nonce = generate_nonce()
        self.store.store_oauth_state(state, nonce)

        url = build_authorization_url(
            authorization_endpoint=cfg.authorization_endpoint,
            client_id=cfg.client_id,
            redirect_uri=cfg.redirect_uri,
            scope=cfg.scope,
            state=state,
            nonce=nonce,
        )
        logger.info("Starting OAuth login (mode=%s)", mode.value)

        if mode is ResponseMode.JSON:
            return JsonReply({"authUrl": url, "success": True})
        return Redirect(url)


class CallbackHandler:
    """Validates the provider's redirect and turns a code into a session."""

    def __init__(self, config: OAuthConfig, store: SessionStore, token_client: TokenClient):
        self.config = config
        self.store = store
        self.token_client = token_client

    async def handle(
        self,
        code: str | None,
        state: str | None,
        error: str | None = None,
        error_description: str | None = None,
    ) -> TokenResponse:
        if error:
            logger.warning("Provider returned error: %s (%s)", error, error_description or "")
            if state and self.store.verify_oauth_state(state):
                self.store.clear_oauth_state()
            raise ProviderError(error, error_description)

        if not code or not state:
            logger.warning("Callback missing code or state")
            raise MissingParametersError()

        # Must precede any call to the token endpoint
        if not self.store.verify_oauth_state(state):
            raise CsrfError()

        cfg = self.config
        tokens = await self.token_client.exchange_code(
            code=code,
            redirect_uri=cfg.redirect_uri,
            client_id=cfg.client_id,
            client_secret=cfg.client_secret,
            token_endpoint=cfg.token_endpoint,
        )

        self.store.store_session(
            access_token=tokens.access_token,
            expires_in=tokens.expires_in,
            refresh_token=tokens.refresh_token,
            id_token=tokens.id_token,
        )
        self.store.clear_oauth_state()
        logger.info("Authentication successful")
        return tokens


def build_end_session_url(
    end_session_endpoint: str, post_logout_redirect_uri: str, id_token: str | None
) -> str:
    parts = urllib.parse.urlsplit(end_session_endpoint)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ConfigurationError("End-session endpoint is not a valid URL")
    query = urllib.parse.parse_qsl(parts.query, keep_blank_values=True)
    query += [
        ("post_logout_redirect_uri", post_logout_redirect_uri),
        ("id_token_hint", id_token or ""),
    ]
    return urllib.parse.urlunsplit(parts._replace(query=urllib.parse.urlencode(query)))


class LogoutHandler:
    """Ends the local session and points the browser at the provider's logout."""

    def __init__(self, store: SessionStore):
        self.store = store

    def logout(self, config: OAuthConfig | None, home_url: str) -> str:
        """Return the redirect target. Local cookies are always cleared.

        Falls back to *home_url* when the provider URL cannot be built.
        """
        id_token = self.store.get_session().id_token
        try:
            if config is None:
                raise ConfigurationError("OAuth configuration unavailable")
            target = build_end_session_url(
                config.end_session_endpoint, config.post_logout_redirect_uri, id_token
            )
        except AuthError as exc:
            logger.warning("Provider logout unavailable, redirecting home: %s", exc)
            target = home_url
        finally:
            self.store.clear_session()
        logger.info("Logged out (had_id_token=%s)", id_token is not None)
        return target
