# Auth router: login, callback, logout, session status, refresh.
# Created: 2026-10-19
#
# Every AuthError raised by the flow classes is converted here into a 302 to
# /account?error=... (browser routes) or a JSON error body (programmatic
# routes). All cookie changes of one request go out on one response.

from __future__ import annotations

import dataclasses
import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from storefront.api.deps import (
    app_base_url,
    get_audit_logger,
    get_config_provider,
    get_login_limiter,
    get_refresher,
    get_session_store,
    get_token_client,
)
from storefront.api.schemas import ErrorResponse, RefreshResponse, SessionStatus
from storefront.auth.config import ConfigProvider
from storefront.auth.errors import AuthError, CsrfError, ExchangeError, NoRefreshTokenError
from storefront.auth.flow import (
    CallbackHandler,
    JsonReply,
    LoginInitiator,
    LogoutHandler,
    Outcome,
    Redirect,
    ResponseMode,
    error_redirect_url,
    login_failure,
)
from storefront.auth.oauth import TokenClient
from storefront.auth.refresh import TokenRefresher
from storefront.auth.session import CookieSessionStore
from storefront.security.audit import AuditLogger, AuditSeverity
from storefront.security.rate_limiter import RateLimiter, client_key

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def _render(outcome: Outcome, store: CookieSessionStore) -> Response:
    if isinstance(outcome, Redirect):
        response: Response = RedirectResponse(outcome.url, status_code=302)
    else:
        response = JSONResponse(
            outcome.body, status_code=outcome.status_code, headers=outcome.headers
        )
    response.headers["Cache-Control"] = "no-store"
    return store.apply(response)


@router.get("/auth/login")
async def login(
    request: Request,
    store: CookieSessionStore = Depends(get_session_store),
    provider: ConfigProvider = Depends(get_config_provider),
    limiter: RateLimiter = Depends(get_login_limiter),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """Start the authorization code flow (302, or JSON when Accept asks for it)."""
    mode = ResponseMode.from_accept(request.headers.get("accept"))
    client = client_key(request)

    info = limiter.check(client)
    if not info.allowed:
        audit.record(
            "login_failed", client, "failure", AuditSeverity.WARNING, reason="rate_limited"
        )
        outcome = login_failure(mode, app_base_url(request), "Too many login attempts", 429)
        if isinstance(outcome, JsonReply):
            outcome = dataclasses.replace(outcome, headers=info.headers())
        return _render(outcome, store)

    try:
        config = await provider.get()
        outcome = LoginInitiator(config, store).initiate(mode)
        audit.record("login_started", client, mode=mode.value)
    except AuthError as exc:
        logger.error("Login could not start: %s", exc)
        audit.record("login_failed", client, "failure", AuditSeverity.WARNING, reason=exc.code)
        outcome = login_failure(mode, app_base_url(request), exc.message)
    return _render(outcome, store)


@router.get("/auth/callback")
async def callback(
    request: Request,
    code: str | None = Query(None),
    state: str | None = Query(None),
    error: str | None = Query(None),
    error_description: str | None = Query(None),
    store: CookieSessionStore = Depends(get_session_store),
    provider: ConfigProvider = Depends(get_config_provider),
    token_client: TokenClient = Depends(get_token_client),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """Provider redirect target. Always answers with a 302."""
    client = client_key(request)
    try:
        config = await provider.get()
        await CallbackHandler(config, store, token_client).handle(
            code=code, state=state, error=error, error_description=error_description
        )
        audit.record("callback_succeeded", client)
        outcome: Outcome = Redirect(config.account_url)
    except AuthError as exc:
        if isinstance(exc, ExchangeError):
            logger.error("OAuth callback failed: %s (status=%s)", exc.code, exc.status)
        else:
            logger.warning("OAuth callback failed: %s", exc.code)
        severity = AuditSeverity.ALERT if isinstance(exc, CsrfError) else AuditSeverity.WARNING
        audit.record("callback_failed", client, "failure", severity, reason=exc.code)
        outcome = Redirect(error_redirect_url(app_base_url(request), exc.message))
    except Exception:
        logger.exception("Unexpected error in OAuth callback")
        audit.record("callback_failed", client, "failure", AuditSeverity.WARNING, reason="internal")
        outcome = Redirect(error_redirect_url(app_base_url(request), "Authentication failed"))
    return _render(outcome, store)


@router.get("/auth/logout")
async def logout(
    request: Request,
    store: CookieSessionStore = Depends(get_session_store),
    provider: ConfigProvider = Depends(get_config_provider),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """Clear the local session, then hand off to the provider's end-session endpoint."""
    try:
        config = await provider.get()
    except AuthError as exc:
        logger.warning("Logging out without provider configuration: %s", exc)
        config = None

    target = LogoutHandler(store).logout(config, home_url=app_base_url(request) + "/")
    audit.record("logout", client_key(request), provider_logout=config is not None)
    return _render(Redirect(target), store)


@router.get("/auth/session", response_model=SessionStatus)
async def session_status(store: CookieSessionStore = Depends(get_session_store)):
    """Cookie-only validity check; never calls the provider."""
    session = store.get_session()
    valid = store.is_session_valid()
    return SessionStatus(authenticated=valid, expiresAt=session.expires_at if valid else None)


@router.post("/auth/refresh", response_model=RefreshResponse)
async def refresh(
    request: Request,
    store: CookieSessionStore = Depends(get_session_store),
    provider: ConfigProvider = Depends(get_config_provider),
    refresher: TokenRefresher = Depends(get_refresher),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """Exchange the session's refresh token for a new access token."""
    client = client_key(request)
    try:
        config = await provider.get()
        session = await refresher.refresh_session(store, config)
    except NoRefreshTokenError as exc:
        outcome: Outcome = JsonReply(ErrorResponse(error=exc.message).model_dump(), status_code=401)
    except ExchangeError as exc:
        logger.error("Token refresh failed (status=%s)", exc.status)
        audit.record("refresh", client, "failure", AuditSeverity.WARNING, reason=exc.code)
        outcome = JsonReply(ErrorResponse(error=exc.message).model_dump(), status_code=502)
    except AuthError as exc:
        logger.error("Token refresh unavailable: %s", exc)
        outcome = JsonReply(ErrorResponse(error=exc.message).model_dump(), status_code=500)
    else:
        audit.record("refresh", client)
        outcome = JsonReply(RefreshResponse(expiresAt=session.expires_at).model_dump())
    return _render(outcome, store)
