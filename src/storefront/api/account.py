# Account router: the current-customer accessor for storefront pages.
# Created: 2026-10-19

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from storefront.api.deps import get_config_provider, get_customer_client, get_session_store
from storefront.api.schemas import CustomerResponse
from storefront.auth.config import ConfigProvider
from storefront.auth.customer import CustomerClient, get_authenticated_customer
from storefront.auth.errors import AuthError
from storefront.auth.session import CookieSessionStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Account"])


@router.get("/account/customer", response_model=CustomerResponse)
async def current_customer(
    store: CookieSessionStore = Depends(get_session_store),
    provider: ConfigProvider = Depends(get_config_provider),
    client: CustomerClient = Depends(get_customer_client),
):
    """Profile of the signed-in customer, or 401 when not authenticated."""
    unauthenticated = JSONResponse({"authenticated": False}, status_code=401)
    if not store.is_session_valid():
        return unauthenticated

    try:
        config = await provider.get()
    except AuthError as exc:
        logger.error("Customer lookup unavailable: %s", exc)
        return unauthenticated

    customer = await get_authenticated_customer(store, config, client)
    if customer is None:
        return unauthenticated
    return CustomerResponse.model_validate(customer)
