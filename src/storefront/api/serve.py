"""Application factory and server runner.

``create_app()`` wires the auth collaborators onto ``app.state`` and mounts
the routers. Tests pass a ready ``OAuthConfig`` and fake clients; production
resolves configuration from the environment (with optional discovery) on
startup.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from storefront import __version__
from storefront.auth.config import ConfigProvider, OAuthConfig
from storefront.auth.customer import CustomerClient
from storefront.auth.errors import AuthError
from storefront.auth.oauth import TokenClient
from storefront.auth.refresh import TokenRefresher
from storefront.config import Settings, get_settings
from storefront.security.audit import AuditLogger
from storefront.security.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    # Resolve once at startup; a failure is logged and retried per request
    try:
        await app.state.config_provider.get()
    except AuthError as exc:
        logger.error("Starting without OAuth configuration: %s", exc)
    yield


def create_app(
    settings: Settings | None = None,
    oauth_config: OAuthConfig | None = None,
    token_client: TokenClient | None = None,
    customer_client: CustomerClient | None = None,
) -> FastAPI:
    """Build the storefront auth application."""
    from storefront.api import mount_routers

    settings = settings or get_settings()

    app = FastAPI(
        title="Storefront Auth API",
        description="Customer OAuth login, session and account endpoints.",
        version=__version__,
        docs_url="/api/docs",
        redoc_url=None,
        openapi_url="/api/openapi.json",
        lifespan=_lifespan,
    )

    if oauth_config is not None:
        provider = ConfigProvider.from_config(oauth_config)
    else:
        provider = ConfigProvider(settings=settings)
    timeout = oauth_config.http_timeout if oauth_config else settings.http_timeout_seconds
    auth_scheme = (
        oauth_config.customer_api_auth_scheme if oauth_config else settings.customer_api_auth_scheme
    )

    app.state.settings = settings
    app.state.config_provider = provider
    app.state.token_client = token_client or TokenClient(timeout=timeout)
    app.state.customer_client = customer_client or CustomerClient(
        timeout=timeout, auth_scheme=auth_scheme
    )
    app.state.refresher = TokenRefresher(app.state.token_client)
    app.state.login_limiter = RateLimiter(
        rate=settings.login_rate_per_second, capacity=settings.login_burst
    )
    app.state.audit = AuditLogger(settings.audit_log_path)

    mount_routers(app)
    return app


def run_server(host: str = "127.0.0.1", port: int = 8000, dev: bool = False) -> None:
    """Start uvicorn with the storefront app."""
    import uvicorn

    print("\n" + "=" * 50)
    print("STOREFRONT AUTH SERVER")
    print("=" * 50)
    display_host = "localhost" if host in ("127.0.0.1", "0.0.0.0") else host
    print(f"\nAPI docs: http://{display_host}:{port}/api/docs\n")

    if dev:
        import pathlib

        src_dir = str(pathlib.Path(__file__).resolve().parent.parent)
        uvicorn.run(
            "storefront.api.serve:create_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            reload_dirs=[src_dir],
            reload_includes=["*.py"],
            log_level="debug",
        )
    else:
        uvicorn.run(create_app(), host=host, port=port)
