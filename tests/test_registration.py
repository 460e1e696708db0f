"""Tests for the Shopify client, country lookup and registration service.

Covers:
- Country names (German/English) and ISO codes → ISO-2, default DE
- Customer search by email, create, error statuses
- Registration: existing customer reused, new customer created with addresses
- Email precheck degrades to "not found" when Shopify is unreachable
"""

from __future__ import annotations

import json

import httpx
import pytest

from vatgate.errors import ShopifyError, ShopifyUnavailableError
from vatgate.events import EventBus
from vatgate.shop.client import ShopifyClient
from vatgate.shop.countries import resolve_country_code
from vatgate.shop.schemas import RegistrationRequest, ShippingAddress
from vatgate.shop.service import RegistrationService, build_customer_payload
from tests.helpers import EventRecorder, make_settings, mock_http

BASE = "https://test-shop.myshopify.com/admin/api/2023-10"


class ShopifyStub:
    """Answers customer search and create; records requests."""

    def __init__(
        self,
        customers: list[dict] | None = None,
        create_status: int = 201,
        create_body: dict | None = None,
        search_error: Exception | None = None,
    ) -> None:
        self.customers = customers or []
        self.create_status = create_status
        self.create_body = create_body
        self.search_error = search_error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "GET" and path.endswith("/customers/search.json"):
            if self.search_error is not None:
                raise type(self.search_error)(str(self.search_error), request=request)
            return httpx.Response(200, json={"customers": self.customers})
        if request.method == "POST" and path.endswith("/customers.json"):
            body = self.create_body
            if body is None:
                sent = json.loads(request.content)["customer"]
                body = {"customer": {"id": 4242, **sent}}
            return httpx.Response(self.create_status, json=body)
        return httpx.Response(404)

    def posts(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]


def _client(stub: ShopifyStub) -> ShopifyClient:
    return ShopifyClient(mock_http(stub), make_settings().shopify)


# ── Countries ────────────────────────────────────────────────────────


class TestResolveCountryCode:
    @pytest.mark.parametrize(
        ("name", "code"),
        [
            ("Deutschland", "DE"),
            ("Österreich", "AT"),
            ("Schweiz", "CH"),
            ("Frankreich", "FR"),
            ("Italien", "IT"),
            ("italy", "IT"),
            ("  Niederlande ", "NL"),
            ("at", "AT"),
        ],
    )
    def test_known(self, name, code):
        assert resolve_country_code(name) == code

    @pytest.mark.parametrize("name", [None, "", "Atlantis"])
    def test_default(self, name):
        assert resolve_country_code(name) == "DE"

    def test_custom_default(self):
        assert resolve_country_code("Atlantis", default="AT") == "AT"


# ── Client ───────────────────────────────────────────────────────────


class TestShopifyClient:
    @pytest.mark.asyncio()
    async def test_search_sends_query_and_token(self):
        stub = ShopifyStub(customers=[{"id": 1, "email": "a@b.de"}])

        customer = await _client(stub).find_customer_by_email("a@b.de")

        assert customer == {"id": 1, "email": "a@b.de"}
        request = stub.requests[0]
        assert str(request.url).startswith(f"{BASE}/customers/search.json")
        assert request.url.params["query"] == "email:a@b.de"
        assert request.headers["X-Shopify-Access-Token"] == "shpat_test"

    @pytest.mark.asyncio()
    async def test_search_no_match(self):
        assert await _client(ShopifyStub()).find_customer_by_email("a@b.de") is None

    @pytest.mark.asyncio()
    async def test_search_unreachable(self):
        stub = ShopifyStub(search_error=httpx.ConnectTimeout("slow"))

        with pytest.raises(ShopifyUnavailableError):
            await _client(stub).find_customer_by_email("a@b.de")

    @pytest.mark.asyncio()
    async def test_create_returns_customer(self):
        stub = ShopifyStub()

        customer = await _client(stub).create_customer({"email": "a@b.de"})

        assert customer["id"] == 4242
        assert json.loads(stub.posts()[0].content) == {"customer": {"email": "a@b.de"}}

    @pytest.mark.asyncio()
    async def test_create_rejected(self):
        stub = ShopifyStub(create_status=422, create_body={"errors": {"email": ["has already been taken"]}})

        with pytest.raises(ShopifyError) as exc_info:
            await _client(stub).create_customer({"email": "a@b.de"})

        assert exc_info.value.status_code == 422
        assert exc_info.value.errors == {"email": ["has already been taken"]}

    @pytest.mark.asyncio()
    async def test_create_without_customer_key(self):
        stub = ShopifyStub(create_status=200, create_body={})

        with pytest.raises(ShopifyError) as exc_info:
            await _client(stub).create_customer({"email": "a@b.de"})

        assert exc_info.value.status_code == 502


# ── Payload ──────────────────────────────────────────────────────────


class TestBuildCustomerPayload:
    def test_billing_address_is_default(self):
        request = RegistrationRequest(
            email=" Max@Example.DE ",
            first_name="Max",
            last_name="Muster",
            company_name="Muster GmbH",
            street="Hauptstr. 1",
            city="Wien",
            zip="1010",
            country="Österreich",
            vat_number="ATU12345678",
        )

        payload = build_customer_payload(request)

        assert payload["email"] == "max@example.de"
        assert payload["note"] == "VAT ID: ATU12345678"
        assert payload["accepts_marketing"] is False
        assert payload["addresses"] == [{
            "company": "Muster GmbH",
            "address1": "Hauptstr. 1",
            "city": "Wien",
            "zip": "1010",
            "country": "AT",
            "default": True,
        }]

    def test_shipping_address_added_with_street(self):
        request = RegistrationRequest(
            email="max@example.de",
            country="Frankreich",
            shipping_address=ShippingAddress(street="Rue 2", city="Paris", zip="75001"),
        )

        addresses = build_customer_payload(request)["addresses"]

        assert len(addresses) == 2
        assert addresses[1] == {
            "address1": "Rue 2",
            "city": "Paris",
            "zip": "75001",
            "country": "FR",
            "default": False,
        }

    def test_shipping_address_without_street_ignored(self):
        request = RegistrationRequest(email="max@example.de", shipping_address=ShippingAddress(city="Paris"))

        payload = build_customer_payload(request)

        assert len(payload["addresses"]) == 1
        assert payload["addresses"][0]["country"] == "DE"
        assert "note" not in payload


# ── Service ──────────────────────────────────────────────────────────


class TestRegistrationService:
    @pytest.mark.asyncio()
    async def test_existing_customer_reused(self):
        stub = ShopifyStub(customers=[{"id": 7, "email": "max@example.de"}])
        service = RegistrationService(_client(stub))

        outcome = await service.register(RegistrationRequest(email="max@example.de"))

        assert outcome.created is False
        assert outcome.customer["id"] == 7
        assert stub.posts() == []

    @pytest.mark.asyncio()
    async def test_new_customer_created(self):
        recorder = EventRecorder()
        bus = EventBus()
        bus.subscribe(recorder.record)
        stub = ShopifyStub()
        service = RegistrationService(_client(stub), bus)

        outcome = await service.register(RegistrationRequest(email="max@example.de", country="Schweiz"))

        assert outcome.created is True
        assert outcome.customer["id"] == 4242
        assert outcome.customer["addresses"][0]["country"] == "CH"
        assert recorder.types() == ["customer.lookup", "customer.created"]

    @pytest.mark.asyncio()
    async def test_lookup_failure_degrades_to_create(self):
        stub = ShopifyStub(search_error=httpx.ReadTimeout("slow"))
        service = RegistrationService(_client(stub))

        outcome = await service.register(RegistrationRequest(email="max@example.de"))

        assert outcome.created is True
        assert len(stub.posts()) == 1

    @pytest.mark.asyncio()
    async def test_rejection_propagates(self):
        stub = ShopifyStub(create_status=422, create_body={"errors": {"phone": ["is invalid"]}})
        service = RegistrationService(_client(stub))

        with pytest.raises(ShopifyError):
            await service.register(RegistrationRequest(email="max@example.de", phone="x"))

    @pytest.mark.asyncio()
    async def test_check_email(self):
        service = RegistrationService(_client(ShopifyStub(customers=[{"id": 9}])))

        response = await service.check_email("max@example.de")

        assert response.exists is True
        assert response.customer_id == 9
        assert response.checked is True

    @pytest.mark.asyncio()
    async def test_check_email_degraded(self):
        service = RegistrationService(_client(ShopifyStub(search_error=httpx.ConnectError("down"))))

        response = await service.check_email("max@example.de")

        assert response.exists is False
        assert response.checked is False
