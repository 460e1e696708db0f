"""Async httpx client for the EU VIES checkVat SOAP service.

One check is a two-step unit of work:
1. GET the WSDL and read the SOAP endpoint address from it
2. POST a checkVat envelope to that address

VIES reports failures as SOAP faults whose faultstring is a code such as
MS_UNAVAILABLE; those are classified by ``classify_fault``.
"""

from __future__ import annotations

import logging
from xml.etree import ElementTree as ET
from xml.sax.saxutils import escape

import httpx

from vatgate.config import ViesSettings
from vatgate.errors import FaultKind, ProviderError
from vatgate.vat.faults import classify_fault
from vatgate.vat.identifier import VatIdentifier
from vatgate.vat.providers.base import clean_text
from vatgate.vat.schemas import VerificationResult, VerificationSource

logger = logging.getLogger(__name__)

_NS = {
    "wsdl": "http://schemas.xmlsoap.org/wsdl/",
    "wsdlsoap": "http://schemas.xmlsoap.org/wsdl/soap/",
    "soap": "http://schemas.xmlsoap.org/soap/envelope/",
    "vies": "urn:ec.europa.eu:taxud:vies:services:checkVat:types",
}

_ENVELOPE = """<?xml version="1.0" encoding="UTF-8"?>
<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/"
 xmlns:vies="urn:ec.europa.eu:taxud:vies:services:checkVat:types">
  <soap:Body>
    <vies:checkVat>
      <vies:countryCode>{country_code}</vies:countryCode>
      <vies:vatNumber>{vat_number}</vies:vatNumber>
    </vies:checkVat>
  </soap:Body>
</soap:Envelope>"""


class ViesClient:
    """Primary provider: the authoritative EU registry."""

    name = "vies"

    def __init__(self, http: httpx.AsyncClient, settings: ViesSettings) -> None:
        self._http = http
        self._wsdl_url = settings.vies_wsdl_url
        self._timeout = httpx.Timeout(settings.vies_request_timeout, connect=5.0)

    async def check(self, identifier: VatIdentifier) -> VerificationResult:
        """Ask VIES whether ``identifier`` is a registered VAT number.

        Raises:
            ProviderError: transient for VIES availability faults and
                transport timeouts, permanent for everything else.
        """
        try:
            endpoint = await self._fetch_endpoint()
            response = await self._http.post(
                endpoint,
                content=_ENVELOPE.format(
                    country_code=escape(identifier.country_code),
                    vat_number=escape(identifier.number),
                ),
                headers={"Content-Type": "text/xml; charset=utf-8", "SOAPAction": ""},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise ProviderError(self.name, FaultKind.TRANSIENT, "timeout", str(exc)) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(self.name, FaultKind.PERMANENT, "network_error", str(exc)) from exc

        return self._parse_response(response)

    async def _fetch_endpoint(self) -> str:
        """Download the service description and return the SOAP address."""
        response = await self._http.get(self._wsdl_url, timeout=self._timeout)
        if response.is_error:
            raise self._http_error(response)

        try:
            root = ET.fromstring(response.content)
        except ET.ParseError as exc:
            raise ProviderError(self.name, FaultKind.PERMANENT, "malformed_wsdl", str(exc)) from exc

        address = root.find(".//wsdl:service/wsdl:port/wsdlsoap:address", _NS)
        location = address.get("location") if address is not None else None
        if not location:
            raise ProviderError(self.name, FaultKind.PERMANENT, "malformed_wsdl", "no SOAP address")
        return location

    def _http_error(self, response: httpx.Response) -> ProviderError:
        """503 Service Unavailable and 504 Gateway Timeout classify as transient."""
        detail = f"HTTP {response.status_code} {response.reason_phrase}"
        return ProviderError(
            self.name,
            classify_fault(None, detail),
            f"http_{response.status_code}",
            detail,
        )

    def _parse_response(self, response: httpx.Response) -> VerificationResult:
        """Map a checkVat response (or SOAP fault) onto a result."""
        try:
            root = ET.fromstring(response.content)
        except ET.ParseError as exc:
            if response.is_error:
                raise self._http_error(response) from exc
            raise ProviderError(self.name, FaultKind.PERMANENT, "malformed_response", str(exc)) from exc

        # VIES sends faults with HTTP 500, so look for one before checking the status
        fault = root.find(".//soap:Fault", _NS)
        if fault is not None:
            code = (fault.findtext("faultstring") or "").strip()
            detail = (fault.findtext("detail") or "").strip()
            kind = classify_fault(code, detail)
            logger.info("VIES fault %s (%s)", code or "<empty>", kind.value)
            raise ProviderError(self.name, kind, code or "soap_fault", detail)

        if response.is_error:
            raise self._http_error(response)

        body = root.find(".//vies:checkVatResponse", _NS)
        valid_text = body.findtext("vies:valid", namespaces=_NS) if body is not None else None
        if valid_text is None:
            raise ProviderError(self.name, FaultKind.PERMANENT, "malformed_response", "no <valid> element")

        address = clean_text(body.findtext("vies:address", namespaces=_NS))
        if address:
            address = ", ".join(line.strip() for line in address.splitlines() if line.strip())

        return VerificationResult(
            valid=valid_text.strip().lower() == "true",
            name=clean_text(body.findtext("vies:name", namespaces=_NS)),
            address=address,
            source=VerificationSource.PRIMARY,
        )
