# OAuth client configuration: immutable value + one-time resolution.
# Created: 2026-10-19
#
# OAuthConfig is built once per process and handed explicitly to the login,
# callback, logout and token components. Endpoints come from static settings
# first; discovery only fills the gaps when a store domain is configured.

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from storefront.auth.discovery import ProviderEndpoints, discover_endpoints
from storefront.auth.errors import ConfigurationError
from storefront.config import DEFAULT_SCOPE, Settings

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/api/auth/callback"
ACCOUNT_PATH = "/account"

# Setting attribute -> environment variable, in the order errors are reported.
_REQUIRED: list[tuple[str, str]] = [
    ("client_id", "SHOPIFY_CUSTOMER_API_CLIENT_ID"),
    ("client_secret", "SHOPIFY_CUSTOMER_API_CLIENT_SECRET"),
    ("authorization_endpoint", "SHOPIFY_AUTHORIZATION_ENDPOINT"),
    ("token_endpoint", "SHOPIFY_TOKEN_ENDPOINT"),
    ("end_session_endpoint", "SHOPIFY_END_SESSION_ENDPOINT"),
    ("customer_api_endpoint", "SHOPIFY_CUSTOMER_API_ENDPOINT"),
    ("app_url", "SHOPIFY_APP_URL"),
]

_ENDPOINT_FIELDS = (
    "authorization_endpoint",
    "token_endpoint",
    "end_session_endpoint",
    "customer_api_endpoint",
)


@dataclass(frozen=True)
class OAuthConfig:
    """Fully resolved confidential-client configuration."""

    client_id: str
    client_secret: str = field(repr=False)
    authorization_endpoint: str
    token_endpoint: str
    end_session_endpoint: str
    customer_api_endpoint: str
    app_url: str
    scope: str = DEFAULT_SCOPE
    http_timeout: float = 10.0
    customer_api_auth_scheme: str = ""

    def __post_init__(self) -> None:
        values = {attr: getattr(self, attr) for attr, _ in _REQUIRED}
        missing = [env for attr, env in _REQUIRED if not str(values[attr]).strip()]
        if missing:
            raise ConfigurationError(_missing_message(missing), missing=missing)
        for attr in (*_ENDPOINT_FIELDS, "app_url"):
            if not _is_absolute_url(getattr(self, attr)):
                raise ConfigurationError(
                    f"OAuth configuration error: {attr} must be an absolute URL"
                )
        object.__setattr__(self, "app_url", self.app_url.rstrip("/"))

    @property
    def redirect_uri(self) -> str:
        return self.app_url + CALLBACK_PATH

    @property
    def post_logout_redirect_uri(self) -> str:
        return self.app_url

    @property
    def account_url(self) -> str:
        return self.app_url + ACCOUNT_PATH


def _is_absolute_url(value: str) -> bool:
    parts = urlsplit(value)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def _missing_message(missing: list[str]) -> str:
    return "OAuth configuration errors: " + "; ".join(f"{env} is not set" for env in missing)


def build_oauth_config(
    settings: Settings, endpoints: ProviderEndpoints | None = None
) -> OAuthConfig:
    """Build an OAuthConfig from *settings*, letting static endpoints win over discovered ones."""
    resolved = {attr: getattr(settings, attr) for attr in _ENDPOINT_FIELDS}
    if endpoints is not None:
        for attr in _ENDPOINT_FIELDS:
            if not resolved[attr]:
                resolved[attr] = getattr(endpoints, attr)

    return OAuthConfig(
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        app_url=settings.app_url,
        scope=settings.oauth_scope or DEFAULT_SCOPE,
        http_timeout=settings.http_timeout_seconds,
        customer_api_auth_scheme=settings.customer_api_auth_scheme,
        **resolved,
    )


def needs_discovery(settings: Settings) -> bool:
    return bool(settings.store_domain) and any(
        not getattr(settings, attr) for attr in _ENDPOINT_FIELDS
    )


async def resolve_oauth_config(settings: Settings) -> OAuthConfig:
    """Resolve configuration, running discovery when endpoints are missing.

    Raises ConfigurationError or DiscoveryError.
    """
    endpoints = None
    if needs_discovery(settings):
        endpoints = await discover_endpoints(
            settings.store_domain, timeout=settings.http_timeout_seconds
        )
    config = build_oauth_config(settings, endpoints)
    logger.info(
        "OAuth configuration resolved (redirect_uri=%s, discovered=%s)",
        config.redirect_uri,
        endpoints is not None,
    )
    return config


class ConfigProvider:
    """Resolves OAuthConfig once and caches it.

    A failed resolution is not cached; the next ``get()`` tries again so a
    transient discovery outage does not disable login until restart.
    """

    def __init__(self, settings: Settings | None = None, config: OAuthConfig | None = None):
        if settings is None and config is None:
            raise ValueError("ConfigProvider needs settings or a resolved config")
        self._settings = settings
        self._config = config
        self._lock = asyncio.Lock()
        self.last_error: Exception | None = None

    @classmethod
    def from_config(cls, config: OAuthConfig) -> ConfigProvider:
        return cls(config=config)

    @property
    def current(self) -> OAuthConfig | None:
        return self._config

    async def get(self) -> OAuthConfig:
        if self._config is not None:
            return self._config
        async with self._lock:
            if self._config is None:
                try:
                    self._config = await resolve_oauth_config(self._settings)
                    self.last_error = None
                except Exception as exc:
                    self.last_error = exc
                    logger.error("OAuth configuration unavailable: %s", exc)
                    raise
        return self._config
