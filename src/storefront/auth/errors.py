# Auth error taxonomy.
# Created: 2026-10-19
#
# Every error carries a ``message`` that is safe to show to the end user.
# Diagnostic detail (HTTP status, response body) lives on separate attributes
# and is only ever logged.

from __future__ import annotations


class AuthError(Exception):
    """Base class for authentication flow failures."""

    code = "auth_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(AuthError):
    """A required OAuth setting is missing or malformed."""

    code = "configuration_error"

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = list(missing or [])


class DiscoveryError(AuthError):
    """Endpoint discovery failed (HTTP error, timeout, malformed document)."""

    code = "discovery_failure"


class ProviderError(AuthError):
    """The identity provider redirected back with ``error``."""

    code = "provider_error"

    def __init__(self, error: str, description: str | None = None):
        super().__init__(description or error)
        self.error = error
        self.description = description


class MissingParametersError(AuthError):
    """The callback is missing ``code`` or ``state``."""

    code = "missing_params"

    def __init__(self, message: str = "Invalid callback parameters"):
        super().__init__(message)


class CsrfError(AuthError):
    """Received ``state`` does not match the stored one (or none is stored)."""

    code = "csrf_failure"

    def __init__(self, message: str = "Invalid state (CSRF protection)"):
        super().__init__(message)


class ExchangeError(AuthError):
    """Token endpoint returned non-2xx, timed out, or sent an unusable body."""

    code = "exchange_failure"

    def __init__(
        self,
        message: str = "Token exchange failed",
        status: int | None = None,
        body: str = "",
    ):
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.message}: HTTP {self.status}"


class CustomerApiError(AuthError):
    """Customer resource API request failed."""

    code = "customer_api_error"

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class NoRefreshTokenError(AuthError):
    """Refresh requested but the session carries no refresh token."""

    code = "no_refresh_token"

    def __init__(self, message: str = "No refresh token in session"):
        super().__init__(message)
