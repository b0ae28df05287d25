# Provider endpoint discovery via the shop's well-known documents.
# Created: 2026-10-19
#
#   GET https://<shop>/.well-known/openid-configuration
#   GET https://<shop>/.well-known/customer-account-api

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from storefront.auth.errors import DiscoveryError

logger = logging.getLogger(__name__)

OPENID_CONFIGURATION_PATH = "/.well-known/openid-configuration"
CUSTOMER_ACCOUNT_API_PATH = "/.well-known/customer-account-api"


@dataclass(frozen=True)
class ProviderEndpoints:
    authorization_endpoint: str
    token_endpoint: str
    end_session_endpoint: str
    customer_api_endpoint: str


def normalize_shop_domain(domain: str) -> str:
    """Strip scheme and trailing slashes: ``https://x.myshopify.com/`` -> ``x.myshopify.com``."""
    cleaned = re.sub(r"^https?://", "", domain.strip(), flags=re.IGNORECASE)
    return cleaned.rstrip("/")


async def _fetch_json(client: httpx.AsyncClient, url: str) -> dict[str, Any]:
    try:
        resp = await client.get(url, headers={"Accept": "application/json"})
    except httpx.TimeoutException as exc:
        raise DiscoveryError(f"Discovery timed out: {url}") from exc
    except httpx.HTTPError as exc:
        raise DiscoveryError(f"Discovery request failed: {url}") from exc

    if not 200 <= resp.status_code < 300:
        logger.error("Discovery %s returned HTTP %s", url, resp.status_code)
        raise DiscoveryError(f"Discovery failed with HTTP {resp.status_code}: {url}")

    try:
        data = resp.json()
    except ValueError as exc:
        raise DiscoveryError(f"Discovery returned invalid JSON: {url}") from exc
    if not isinstance(data, dict):
        raise DiscoveryError(f"Discovery returned an unexpected document: {url}")
    return data


async def discover_endpoints(shop_domain: str, timeout: float = 10.0) -> ProviderEndpoints:
    """Resolve all provider endpoints for *shop_domain*.

    Raises DiscoveryError on transport failure, timeout, non-2xx, or when a
    required field is missing from either document.
    """
    domain = normalize_shop_domain(shop_domain)
    if not domain:
        raise DiscoveryError("Shop domain is required for endpoint discovery")

    base = f"https://{domain}"
    logger.info("Discovering OAuth endpoints for %s", domain)

    async with httpx.AsyncClient(timeout=timeout) as client:
        openid = await _fetch_json(client, base + OPENID_CONFIGURATION_PATH)
        customer_api = await _fetch_json(client, base + CUSTOMER_ACCOUNT_API_PATH)

    fields = {
        "authorization_endpoint": openid.get("authorization_endpoint"),
        "token_endpoint": openid.get("token_endpoint"),
        "end_session_endpoint": openid.get("end_session_endpoint"),
        "customer_api_endpoint": customer_api.get("graphql_api_endpoint"),
    }
    missing = sorted(k for k, v in fields.items() if not v)
    if missing:
        raise DiscoveryError(f"Discovery response missing: {', '.join(missing)}")

    logger.info(
        "Discovered endpoints: authorization=%s token=%s end_session=%s",
        fields["authorization_endpoint"],
        fields["token_endpoint"],
        fields["end_session_endpoint"],
    )
    return ProviderEndpoints(**fields)
