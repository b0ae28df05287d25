# Storefront settings loaded from the environment and .env.
# Created: 2026-10-19
#
# Provider variable names keep the SHOPIFY_* spelling used by existing
# deployments; service-level knobs use the STOREFRONT_ prefix.

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SCOPE = "openid email customer-account-api:full"


class Settings(BaseSettings):
    """Process-wide settings. Read once at startup."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Provider credentials
    client_id: str = Field("", validation_alias=AliasChoices("SHOPIFY_CUSTOMER_API_CLIENT_ID"))
    client_secret: str = Field(
        "", validation_alias=AliasChoices("SHOPIFY_CUSTOMER_API_CLIENT_SECRET"), repr=False
    )

    # Provider endpoints (static); blanks are filled by discovery when store_domain is set
    authorization_endpoint: str = Field(
        "", validation_alias=AliasChoices("SHOPIFY_AUTHORIZATION_ENDPOINT")
    )
    token_endpoint: str = Field("", validation_alias=AliasChoices("SHOPIFY_TOKEN_ENDPOINT"))
    end_session_endpoint: str = Field(
        "", validation_alias=AliasChoices("SHOPIFY_END_SESSION_ENDPOINT")
    )
    customer_api_endpoint: str = Field(
        "",
        validation_alias=AliasChoices(
            "SHOPIFY_CUSTOMER_API_ENDPOINT", "SHOPIFY_CUSTOMER_ACCOUNT_API_ENDPOINT"
        ),
    )
    store_domain: str = Field("", validation_alias=AliasChoices("SHOPIFY_STORE_DOMAIN"))

    # Public base URL of this application (redirect URI + post-logout target)
    app_url: str = Field("", validation_alias=AliasChoices("SHOPIFY_APP_URL"))

    oauth_scope: str = Field(DEFAULT_SCOPE, validation_alias=AliasChoices("STOREFRONT_OAUTH_SCOPE"))
    customer_api_auth_scheme: str = Field(
        "", validation_alias=AliasChoices("STOREFRONT_CUSTOMER_API_AUTH_SCHEME")
    )

    environment: str = Field("production", validation_alias=AliasChoices("STOREFRONT_ENVIRONMENT"))
    log_level: str = Field("INFO", validation_alias=AliasChoices("STOREFRONT_LOG_LEVEL"))
    http_timeout_seconds: float = Field(
        10.0, gt=0, validation_alias=AliasChoices("STOREFRONT_HTTP_TIMEOUT_SECONDS")
    )

    # Login rate limiting (token bucket per client IP)
    login_rate_per_second: float = Field(
        1.0, ge=0, validation_alias=AliasChoices("STOREFRONT_LOGIN_RATE_PER_SECOND")
    )
    login_burst: int = Field(10, ge=1, validation_alias=AliasChoices("STOREFRONT_LOGIN_BURST"))

    audit_log_path: Path | None = Field(
        None, validation_alias=AliasChoices("STOREFRONT_AUDIT_LOG_PATH")
    )

    @property
    def is_development(self) -> bool:
        return self.environment.strip().lower() in ("development", "dev", "local")

    @property
    def cookie_secure(self) -> bool:
        """Cookies carry the Secure flag everywhere except local development."""
        return not self.is_development

    @classmethod
    def load(cls) -> Settings:
        """Load settings from the environment."""
        return cls()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.load()
