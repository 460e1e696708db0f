"""Shared builders and fakes for the test modules."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import httpx

from vatgate.config import (
    Settings,
    ShopifySettings,
    UnavailablePolicy,
    VatlayerSettings,
    VerificationSettings,
    ViesSettings,
)
from vatgate.schemas.events import SystemEvent
from vatgate.vat.identifier import VatIdentifier
from vatgate.vat.schemas import VerificationResult

VIES_WSDL_URL = "https://vies.test/checkVatService.wsdl"
VIES_ENDPOINT = "https://vies.test/taxation_customs/vies/services/checkVatService"
VATLAYER_CURRENT_URL = "https://current.apilayer.test/vat_verification/validate"
VATLAYER_LEGACY_URL = "https://legacy.apilayer.test/api/validate"


def make_settings(
    *,
    api_key: str = "test-key",
    policy: UnavailablePolicy = UnavailablePolicy.FAIL_OPEN,
    registration_enabled: bool = True,
    **budget: float,
) -> Settings:
    """Settings with test endpoints; ``budget`` overrides VerificationSettings fields."""
    return Settings(
        environment="test",
        registration_enabled=registration_enabled,
        shopify=ShopifySettings(
            shopify_shop_domain="test-shop.myshopify.com",
            shopify_access_token="shpat_test",
        ),
        vies=ViesSettings(vies_wsdl_url=VIES_WSDL_URL),
        vatlayer=VatlayerSettings(
            vatlayer_api_key=api_key,
            vatlayer_current_url=VATLAYER_CURRENT_URL,
            vatlayer_legacy_url=VATLAYER_LEGACY_URL,
        ),
        verification=VerificationSettings(vat_unavailable_policy=policy, **budget),
    )


def mock_http(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class ScriptedProvider:
    """Fake provider replaying one step per call (the last step repeats).

    A step is a VerificationResult or an exception, optionally wrapped in a
    ``(delay_seconds, result_or_exception)`` tuple.
    """

    def __init__(self, name: str, *steps: object) -> None:
        self.name = name
        self._steps = list(steps)
        self.calls: list[VatIdentifier] = []
        self.cancelled = 0

    async def check(self, identifier: VatIdentifier) -> VerificationResult:
        step = self._steps[min(len(self.calls), len(self._steps) - 1)]
        self.calls.append(identifier)
        delay, outcome = step if isinstance(step, tuple) else (0.0, step)
        if delay:
            try:
                await asyncio.sleep(delay)
            except asyncio.CancelledError:
                self.cancelled += 1
                raise
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class EventRecorder:
    """Global bus subscriber that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[SystemEvent] = []

    async def record(self, event: SystemEvent) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [e.event_type.value for e in self.events]
