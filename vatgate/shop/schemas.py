"""Pydantic schemas for customer registration and the email precheck."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


def _normalize_email(v: str) -> str:
    v = v.strip().lower()
    local, _, domain = v.partition("@")
    if not local or not domain:
        msg = "must be an email address"
        raise ValueError(msg)
    return v


class ShippingAddress(BaseModel):
    street: str | None = None
    city: str | None = None
    zip: str | None = None


class RegistrationRequest(BaseModel):
    """Body of POST /register, as sent by the shop's registration form."""

    email: str = Field(min_length=3)
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    company_name: str | None = None
    vat_number: str | None = None
    street: str | None = None
    city: str | None = None
    zip: str | None = None
    country: str | None = None  # display name, e.g. "Deutschland"
    shipping_address: ShippingAddress | None = None
    accepts_marketing: bool = False

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Strip whitespace; Shopify compares emails case-insensitively."""
        return _normalize_email(v)


class CheckEmailRequest(BaseModel):
    email: str = Field(min_length=3)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _normalize_email(v)


class CheckEmailResponse(BaseModel):
    exists: bool
    customer_id: int | None = None
    checked: bool = True  # False when the lookup degraded


class RegistrationResponse(BaseModel):
    success: bool = True
    message: str | None = None
    customer: dict[str, Any]
