# Shared fixtures for the storefront auth tests.
# Created: 2026-10-19

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from storefront.api.serve import create_app
from storefront.auth.config import OAuthConfig
from storefront.auth.customer import CustomerClient
from storefront.auth.models import TokenResponse
from storefront.auth.oauth import TokenClient
from storefront.config import Settings

APP_URL = "http://testserver"
AUTHORIZE_URL = "https://shop.example.com/authentication/oauth/authorize"
TOKEN_URL = "https://shop.example.com/authentication/oauth/token"
LOGOUT_URL = "https://shop.example.com/authentication/logout"
CUSTOMER_API_URL = "https://shop.example.com/customer/api/graphql"


def make_config(**overrides) -> OAuthConfig:
    values = {
        "client_id": "client-123",
        "client_secret": "s3cret-value",
        "authorization_endpoint": AUTHORIZE_URL,
        "token_endpoint": TOKEN_URL,
        "end_session_endpoint": LOGOUT_URL,
        "customer_api_endpoint": CUSTOMER_API_URL,
        "app_url": APP_URL,
    }
    values.update(overrides)
    return OAuthConfig(**values)


def make_settings(**overrides) -> Settings:
    values = {"environment": "development", "login_burst": 100}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_tokens(**overrides) -> TokenResponse:
    values = {
        "access_token": "access-abc",
        "expires_in": 3600,
        "refresh_token": "refresh-def",
        "id_token": "id-ghi",
    }
    values.update(overrides)
    return TokenResponse(**values)


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def token_client():
    client = MagicMock(spec=TokenClient)
    client.exchange_code = AsyncMock(return_value=make_tokens())
    client.refresh = AsyncMock(
        return_value=make_tokens(access_token="access-new", refresh_token=None)
    )
    return client


@pytest.fixture
def customer_client():
    client = MagicMock(spec=CustomerClient)
    client.fetch_customer = AsyncMock(return_value=None)
    return client


@pytest.fixture
def app(settings, config, token_client, customer_client):
    return create_app(
        settings=settings,
        oauth_config=config,
        token_client=token_client,
        customer_client=customer_client,
    )


@pytest.fixture
def client(app):
    return TestClient(app, follow_redirects=False)
