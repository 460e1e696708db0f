"""Async httpx client for the Shopify Admin REST customers API.

Endpoints:
    GET  {base_url}/customers/search.json?query=email:<email>
    POST {base_url}/customers.json
Auth: X-Shopify-Access-Token header
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from vatgate.config import ShopifySettings
from vatgate.errors import ShopifyError, ShopifyUnavailableError

logger = logging.getLogger(__name__)


def _mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    return f"{local[:2]}***@{domain}"


class ShopifyClient:
    """Thin async wrapper around the customer search and create calls."""

    def __init__(self, http: httpx.AsyncClient, settings: ShopifySettings) -> None:
        self._http = http
        self._base_url = settings.base_url
        self._headers = {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": settings.shopify_access_token,
        }
        self._timeout = httpx.Timeout(settings.shopify_timeout, connect=5.0)
        self._lookup_timeout = httpx.Timeout(settings.shopify_lookup_timeout, connect=3.0)

    async def find_customer_by_email(self, email: str) -> dict[str, Any] | None:
        """Return the first customer with this email, or None.

        Raises:
            ShopifyUnavailableError: network failure or timeout.
            ShopifyError: Shopify answered with an error status.
        """
        try:
            response = await self._http.get(
                f"{self._base_url}/customers/search.json",
                params={"query": f"email:{email}"},
                headers=self._headers,
                timeout=self._lookup_timeout,
            )
        except httpx.HTTPError as exc:
            logger.warning("Shopify customer search failed for %s: %s", _mask_email(email), type(exc).__name__)
            raise ShopifyUnavailableError(str(exc)) from exc

        payload = self._json(response)
        if response.is_error:
            raise ShopifyError(response.status_code, payload.get("errors", payload))

        customers = payload.get("customers") or []
        return customers[0] if customers else None

    async def create_customer(self, customer: dict[str, Any]) -> dict[str, Any]:
        """Create a customer and return Shopify's customer object.

        Raises:
            ShopifyUnavailableError: network failure or timeout.
            ShopifyError: error status or a body without ``customer``.
        """
        try:
            response = await self._http.post(
                f"{self._base_url}/customers.json",
                json={"customer": customer},
                headers=self._headers,
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            logger.error("Shopify customer creation failed: %s", type(exc).__name__)
            raise ShopifyUnavailableError(str(exc)) from exc

        payload = self._json(response)
        if response.is_error or not payload.get("customer"):
            logger.error("Shopify rejected customer (status %s): %s", response.status_code, payload)
            status_code = response.status_code if response.is_error else 502
            raise ShopifyError(status_code, payload.get("errors") or "Customer was not created")

        return payload["customer"]

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}
