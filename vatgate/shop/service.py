"""Customer registration service — create-or-fetch against Shopify.

Steps:
1. Look up the email (bounded; a failed lookup degrades to "not found")
2. Existing customer → return it unchanged
3. Otherwise build the customer payload (billing + optional shipping
   address, ISO-2 country) and create it
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from vatgate.errors import ShopifyError, ShopifyUnavailableError
from vatgate.events import EventBus
from vatgate.schemas.events import EventType, SystemEvent
from vatgate.shop.client import ShopifyClient
from vatgate.shop.countries import resolve_country_code
from vatgate.shop.schemas import CheckEmailResponse, RegistrationRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrationOutcome:
    customer: dict[str, Any]
    created: bool


class RegistrationService:
    """Registers shop customers, reusing an existing account for the same email."""

    def __init__(self, client: ShopifyClient, events: EventBus | None = None) -> None:
        self._client = client
        self._events = events

    async def lookup(self, email: str) -> tuple[dict[str, Any] | None, bool]:
        """Find a customer by email.

        Returns:
            (customer, checked) — checked is False when Shopify could not be
            asked, in which case customer is None.
        """
        try:
            customer = await self._client.find_customer_by_email(email)
        except (ShopifyUnavailableError, ShopifyError) as exc:
            logger.warning("Email precheck degraded: %s", exc)
            await self._emit(EventType.CUSTOMER_LOOKUP_FAILED, {"error": type(exc).__name__})
            return None, False

        await self._emit(EventType.CUSTOMER_LOOKUP, {"found": customer is not None})
        return customer, True

    async def check_email(self, email: str) -> CheckEmailResponse:
        customer, checked = await self.lookup(email)
        return CheckEmailResponse(
            exists=customer is not None,
            customer_id=customer.get("id") if customer else None,
            checked=checked,
        )

    async def register(self, request: RegistrationRequest) -> RegistrationOutcome:
        """Return the existing customer for this email, or create one.

        Raises:
            ShopifyError: Shopify rejected the new customer.
            ShopifyUnavailableError: Shopify could not be reached for creation.
        """
        existing, _ = await self.lookup(request.email)
        if existing is not None:
            logger.info("Customer already exists: %s", existing.get("id"))
            await self._emit(EventType.CUSTOMER_EXISTS, {"customer_id": existing.get("id")})
            return RegistrationOutcome(customer=existing, created=False)

        payload = build_customer_payload(request)
        try:
            customer = await self._client.create_customer(payload)
        except (ShopifyError, ShopifyUnavailableError) as exc:
            await self._emit(EventType.CUSTOMER_REGISTRATION_FAILED, {
                "error": type(exc).__name__,
                "status_code": getattr(exc, "status_code", None),
            })
            raise

        logger.info("Customer created: %s", customer.get("id"))
        await self._emit(EventType.CUSTOMER_CREATED, {
            "customer_id": customer.get("id"),
            "country": payload["addresses"][0]["country"],
        })
        return RegistrationOutcome(customer=customer, created=True)

    async def _emit(self, event_type: EventType, data: dict[str, Any]) -> None:
        if self._events is None:
            return
        await self._events.emit(SystemEvent(
            event_type=event_type,
            data=data,
            source_module="shop.service",
        ))


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}


def build_customer_payload(request: RegistrationRequest) -> dict[str, Any]:
    """Shopify ``customer`` object for a registration request.

    The billing address is the default address; the shipping address is only
    added when it has a street. Both use the billing country.
    """
    country_code = resolve_country_code(request.country)

    addresses = [_compact({
        "company": request.company_name,
        "address1": request.street,
        "city": request.city,
        "zip": request.zip,
        "country": country_code,
        "default": True,
    })]

    shipping = request.shipping_address
    if shipping is not None and shipping.street:
        addresses.append(_compact({
            "address1": shipping.street,
            "city": shipping.city,
            "zip": shipping.zip,
            "country": country_code,
            "default": False,
        }))

    return _compact({
        "first_name": request.first_name,
        "last_name": request.last_name,
        "email": request.email,
        "phone": request.phone,
        "note": f"VAT ID: {request.vat_number}" if request.vat_number else None,
        "addresses": addresses,
        "accepts_marketing": request.accepts_marketing,
    })
