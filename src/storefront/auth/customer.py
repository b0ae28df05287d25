# Customer resource API client + the authenticated-customer gate.
# Created: 2026-10-19

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from storefront.auth.config import OAuthConfig
from storefront.auth.errors import CustomerApiError
from storefront.auth.session import SessionStore

logger = logging.getLogger(__name__)

_ADDRESS_FIELDS = """
        id
        firstName
        lastName
        company
        address1
        address2
        city
        provinceCode
        countryCode
        zip
        phoneNumber
"""

GET_CUSTOMER_QUERY = f"""
query GetCustomer {{
  customer {{
    id
    emailAddress {{ emailAddress }}
    firstName
    lastName
    phoneNumber {{ phoneNumber }}
    numberOfOrders
    defaultAddress {{{_ADDRESS_FIELDS}    }}
    addresses(first: 10) {{
      edges {{
        node {{{_ADDRESS_FIELDS}        }}
      }}
    }}
  }}
}}
"""


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


@dataclass
class CustomerAddress:
    id: str
    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    province: str | None = None
    country: str | None = None
    zip: str | None = None
    phone: str | None = None

    @classmethod
    def from_api(cls, node: dict[str, Any]) -> CustomerAddress:
        return cls(
            id=node.get("id", ""),
            first_name=node.get("firstName"),
            last_name=node.get("lastName"),
            company=node.get("company"),
            address1=node.get("address1"),
            address2=node.get("address2"),
            city=node.get("city"),
            province=node.get("provinceCode"),
            country=node.get("countryCode"),
            zip=node.get("zip"),
            phone=node.get("phoneNumber"),
        )


@dataclass
class Customer:
    """Profile of the signed-in customer."""

    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    number_of_orders: int = 0
    addresses: list[CustomerAddress] = field(default_factory=list)
    default_address: CustomerAddress | None = None

    @property
    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Customer:
        email = _as_dict(data.get("emailAddress")).get("emailAddress")
        phone = _as_dict(data.get("phoneNumber")).get("phoneNumber")
        edges = _as_dict(data.get("addresses")).get("edges") or []
        default = data.get("defaultAddress")
        if not isinstance(default, dict):
            default = None
        try:
            orders = int(data.get("numberOfOrders") or 0)
        except (TypeError, ValueError):
            orders = 0
        return cls(
            id=data.get("id", ""),
            email=email,
            first_name=data.get("firstName"),
            last_name=data.get("lastName"),
            phone=phone,
            number_of_orders=orders,
            addresses=[
                CustomerAddress.from_api(e["node"])
                for e in edges
                if isinstance(e, dict) and isinstance(e.get("node"), dict)
            ],
            default_address=CustomerAddress.from_api(default) if default else None,
        )


class CustomerClient:
    """POSTs the customer query to the resource API with the session's token."""

    def __init__(self, timeout: float = 10.0, auth_scheme: str = ""):
        self.timeout = timeout
        self.auth_scheme = auth_scheme

    def _authorization(self, access_token: str) -> str:
        # The Customer Account API takes the raw token; other providers want "Bearer <token>"
        if self.auth_scheme:
            return f"{self.auth_scheme} {access_token}"
        return access_token

    async def fetch_customer(self, endpoint: str, access_token: str) -> Customer | None:
        """Return the customer, or None when the API reports no customer.

        Raises CustomerApiError on transport, HTTP, content-type, or GraphQL errors.
        """
        if not endpoint:
            raise CustomerApiError("Customer API endpoint is not configured")

        payload = {"query": GET_CUSTOMER_QUERY, "operationName": "GetCustomer"}
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": self._authorization(access_token),
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(endpoint, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise CustomerApiError(f"Customer API request failed: {type(exc).__name__}") from exc

        if not 200 <= resp.status_code < 300:
            logger.error("Customer API HTTP %s: %s", resp.status_code, (resp.text or "")[:500])
            raise CustomerApiError(
                f"Customer API request failed: HTTP {resp.status_code}", status=resp.status_code
            )

        content_type = resp.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise CustomerApiError(f"Expected JSON response but got {content_type or 'nothing'}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise CustomerApiError("Customer API returned invalid JSON") from exc
        if not isinstance(body, dict):
            raise CustomerApiError("Customer API returned an unexpected body")

        if body.get("errors"):
            errors = body["errors"]
            first = errors[0] if isinstance(errors, list) else errors
            message = first.get("message") if isinstance(first, dict) else None
            raise CustomerApiError(message or "Customer API request failed")

        data = _as_dict(body.get("data")).get("customer")
        if not data:
            return None
        if not isinstance(data, dict):
            raise CustomerApiError("Customer API returned an unexpected customer")
        return Customer.from_api(data)


async def get_authenticated_customer(
    store: SessionStore,
    config: OAuthConfig,
    client: CustomerClient,
) -> Customer | None:
    """The single gate for account pages.

    Returns None without any network call when the session is not valid, and
    None when the resource API does not recognise the token.
    """
    if not store.is_session_valid():
        logger.debug("No valid session")
        return None

    session = store.get_session()
    try:
        customer = await client.fetch_customer(config.customer_api_endpoint, session.access_token)
    except CustomerApiError as exc:
        logger.warning("Customer fetch failed, treating as signed out: %s", exc)
        return None

    if customer is None:
        logger.info("Resource API returned no customer for a valid-looking session")
        return None
    logger.debug("Fetched customer %s", customer.id)
    return customer
