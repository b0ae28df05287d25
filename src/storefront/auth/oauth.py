# OAuth 2.0 confidential-client primitives.
# Created: 2026-10-19
#
# Confidential clients keep client_secret on the server and authenticate to
# the token endpoint with HTTP Basic auth, so no PKCE verifier is involved.

from __future__ import annotations

import base64
import logging
import secrets
import urllib.parse

import httpx

from storefront.auth.errors import ExchangeError
from storefront.auth.models import TokenResponse

logger = logging.getLogger(__name__)

STATE_BYTES = 32
NONCE_BYTES = 16
DEFAULT_TIMEOUT = 10.0

# Response bodies are truncated before they reach logs or exceptions
_MAX_BODY = 500


def generate_state() -> str:
    """CSRF ``state``: 32 random bytes, base64url without padding."""
    return secrets.token_urlsafe(STATE_BYTES)


def generate_nonce() -> str:
    """Replay-protection ``nonce``: 16 random bytes, base64url without padding."""
    return secrets.token_urlsafe(NONCE_BYTES)


def build_authorization_url(
    authorization_endpoint: str,
    client_id: str,
    redirect_uri: str,
    scope: str,
    state: str,
    nonce: str,
) -> str:
    """Compose the provider's authorization URL for the code flow."""
    params = {
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": scope,
        "state": state,
        "nonce": nonce,
    }
    separator = "&" if urllib.parse.urlsplit(authorization_endpoint).query else "?"
    return f"{authorization_endpoint}{separator}{urllib.parse.urlencode(params)}"


def basic_auth_header(client_id: str, client_secret: str) -> str:
    """``Basic base64(client_id:client_secret)``."""
    raw = f"{client_id}:{client_secret}".encode()
    return "Basic " + base64.b64encode(raw).decode("ascii")


class TokenClient:
    """Talks to the token endpoint for code exchange and refresh.

    Every failure (transport error, timeout, non-2xx, unusable body) raises
    ExchangeError; nothing is retried here.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    async def exchange_code(
        self,
        code: str,
        redirect_uri: str,
        client_id: str,
        client_secret: str,
        token_endpoint: str,
    ) -> TokenResponse:
        """Exchange an authorization code for tokens."""
        form = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
        }
        return await self._post(token_endpoint, form, client_id, client_secret, "exchange")

    async def refresh(
        self,
        refresh_token: str,
        client_id: str,
        client_secret: str,
        token_endpoint: str,
    ) -> TokenResponse:
        """Mint a new access token from a refresh token."""
        form = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }
        return await self._post(token_endpoint, form, client_id, client_secret, "refresh")

    async def _post(
        self,
        token_endpoint: str,
        form: dict[str, str],
        client_id: str,
        client_secret: str,
        operation: str,
    ) -> TokenResponse:
        label = "Token exchange" if operation == "exchange" else "Token refresh"
        headers = {
            "Authorization": basic_auth_header(client_id, client_secret),
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(token_endpoint, data=form, headers=headers)
        except httpx.TimeoutException as exc:
            logger.warning("%s timed out after %.1fs", label, self.timeout)
            raise ExchangeError(f"{label} failed: timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("%s transport error: %s", label, type(exc).__name__)
            raise ExchangeError(f"{label} failed: network error") from exc

        if not 200 <= resp.status_code < 300:
            body = (resp.text or "")[:_MAX_BODY]
            logger.error("%s failed: HTTP %s %s", label, resp.status_code, body)
            raise ExchangeError(f"{label} failed", status=resp.status_code, body=body)

        try:
            data = resp.json()
        except ValueError as exc:
            raise ExchangeError(
                f"{label} failed: invalid JSON", status=resp.status_code
            ) from exc

        tokens = TokenResponse.from_payload(data)
        logger.info(
            "%s succeeded (has_refresh_token=%s, has_id_token=%s, expires_in=%s)",
            label,
            tokens.refresh_token is not None,
            tokens.id_token is not None,
            tokens.expires_in,
        )
        return tokens
