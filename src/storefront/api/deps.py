# Shared FastAPI dependencies for the API layer.
# Created: 2026-10-19
#
# Collaborators live on app.state (set by create_app) so each app instance,
# including the ones built in tests, has its own.

from __future__ import annotations

from fastapi import Request

from storefront.auth.config import ConfigProvider
from storefront.auth.customer import CustomerClient
from storefront.auth.oauth import TokenClient
from storefront.auth.refresh import TokenRefresher
from storefront.auth.session import CookiePolicy, CookieSessionStore
from storefront.config import Settings
from storefront.security.audit import AuditLogger
from storefront.security.rate_limiter import RateLimiter


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_config_provider(request: Request) -> ConfigProvider:
    return request.app.state.config_provider


def get_session_store(request: Request) -> CookieSessionStore:
    """A cookie-backed store bound to this request."""
    settings: Settings = request.app.state.settings
    return CookieSessionStore.from_request(request, CookiePolicy(secure=settings.cookie_secure))


def get_token_client(request: Request) -> TokenClient:
    return request.app.state.token_client


def get_customer_client(request: Request) -> CustomerClient:
    return request.app.state.customer_client


def get_refresher(request: Request) -> TokenRefresher:
    return request.app.state.refresher


def get_login_limiter(request: Request) -> RateLimiter:
    return request.app.state.login_limiter


def get_audit_logger(request: Request) -> AuditLogger:
    return request.app.state.audit


def app_base_url(request: Request) -> str:
    """Public base URL: resolved config, then settings, then the request itself."""
    config = request.app.state.config_provider.current
    if config is not None:
        return config.app_url
    settings: Settings = request.app.state.settings
    if settings.app_url:
        return settings.app_url.rstrip("/")
    return str(request.base_url).rstrip("/")
