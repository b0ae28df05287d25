# API response schemas.
# Created: 2026-10-19

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    error: str
    success: bool = False


class SessionStatus(BaseModel):
    authenticated: bool
    expiresAt: int | None = Field(None, description="Access-token expiry, epoch milliseconds")


class RefreshResponse(BaseModel):
    success: bool = True
    expiresAt: int | None = None


class AddressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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


class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    number_of_orders: int = 0
    addresses: list[AddressResponse] = Field(default_factory=list)
    default_address: AddressResponse | None = None


class HealthResponse(BaseModel):
    status: str
    configured: bool
    environment: str
    checks: dict[str, bool] = Field(default_factory=dict)
    error: str | None = None
