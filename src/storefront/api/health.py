# Health router: configuration presence report.
# Created: 2026-10-19
#
# Reports whether each setting is present, never its value.

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from storefront.api.deps import get_config_provider, get_settings
from storefront.api.schemas import HealthResponse
from storefront.auth.config import ConfigProvider
from storefront.auth.errors import AuthError
from storefront.config import Settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


def config_checks(settings: Settings) -> dict[str, bool]:
    return {
        "hasClientId": bool(settings.client_id),
        "hasClientSecret": bool(settings.client_secret),
        "hasAuthorizationEndpoint": bool(settings.authorization_endpoint),
        "hasTokenEndpoint": bool(settings.token_endpoint),
        "hasEndSessionEndpoint": bool(settings.end_session_endpoint),
        "hasCustomerApiEndpoint": bool(settings.customer_api_endpoint),
        "hasAppUrl": bool(settings.app_url),
        "hasStoreDomain": bool(settings.store_domain),
    }


@router.get("/health", response_model=HealthResponse)
async def health(
    settings: Settings = Depends(get_settings),
    provider: ConfigProvider = Depends(get_config_provider),
):
    """Whether OAuth configuration resolves."""
    try:
        await provider.get()
    except AuthError as exc:
        return HealthResponse(
            status="degraded",
            configured=False,
            environment=settings.environment,
            checks=config_checks(settings),
            error=exc.message,
        )
    return HealthResponse(
        status="ok",
        configured=True,
        environment=settings.environment,
        checks=config_checks(settings),
    )
