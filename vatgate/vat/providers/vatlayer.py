"""Async httpx client for the apilayer VAT validation API (secondary provider).

Two endpoint generations are tried once each, in order:
- current: apikey request header
- legacy: access_key query parameter

The legacy API answers errors with HTTP 200 and ``{"success": false, ...}``,
so a 2xx status alone does not mean the endpoint answered.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from vatgate.config import VatlayerSettings
from vatgate.errors import FaultKind, ProviderError
from vatgate.vat.identifier import VatIdentifier
from vatgate.vat.providers.base import clean_text
from vatgate.vat.schemas import VerificationResult, VerificationSource

logger = logging.getLogger(__name__)

# apilayer response field names (vary by endpoint generation)
_FIELD_VALID = "valid"
_FIELD_VALIDATION_STATUS = "validation_status"
_FIELD_FORMAT_VALID = "format_valid"
_FIELD_NAME = "company_name"
_FIELD_ADDRESS = "company_address"

UNAVAILABLE_CODE = "secondary_unavailable"


class VatlayerClient:
    """Secondary provider: commercial lookup used when VIES cannot answer."""

    name = "vatlayer"

    def __init__(self, http: httpx.AsyncClient, settings: VatlayerSettings) -> None:
        self._http = http
        self._api_key = settings.vatlayer_api_key
        self._current_url = settings.vatlayer_current_url
        self._legacy_url = settings.vatlayer_legacy_url
        self._timeout = httpx.Timeout(settings.vatlayer_request_timeout, connect=5.0)

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    async def check(self, identifier: VatIdentifier) -> VerificationResult:
        """Return the first usable answer from the current or legacy endpoint.

        Raises:
            ProviderError: ``secondary_unavailable`` when no key is configured
                or neither endpoint answered.
        """
        if not self.enabled:
            raise ProviderError(self.name, FaultKind.PERMANENT, UNAVAILABLE_CODE, "no API key configured")

        vat_number = str(identifier)
        endpoints = (
            (
                VerificationSource.SECONDARY,
                self._current_url,
                {"vat_number": vat_number},
                {"apikey": self._api_key},
            ),
            (
                VerificationSource.SECONDARY_LEGACY,
                self._legacy_url,
                {"access_key": self._api_key, "vat_number": vat_number},
                {},
            ),
        )

        failures: list[str] = []
        for source, url, params, headers in endpoints:
            payload = await self._get(url, params, headers, failures)
            if payload is not None:
                return self._parse_payload(payload, source)

        raise ProviderError(self.name, FaultKind.PERMANENT, UNAVAILABLE_CODE, "; ".join(failures))

    async def _get(
        self,
        url: str,
        params: dict[str, str],
        headers: dict[str, str],
        failures: list[str],
    ) -> dict[str, Any] | None:
        """GET one endpoint; return its JSON object or None (reason appended to ``failures``)."""
        try:
            response = await self._http.get(url, params=params, headers=headers, timeout=self._timeout)
        except httpx.HTTPError as exc:
            logger.warning("apilayer request to %s failed: %s", url, type(exc).__name__)
            failures.append(f"{url}: {type(exc).__name__}")
            return None

        if not response.is_success:
            logger.warning("apilayer %s answered HTTP %s", url, response.status_code)
            failures.append(f"{url}: HTTP {response.status_code}")
            return None

        try:
            payload = response.json()
        except ValueError:
            failures.append(f"{url}: unparseable body")
            return None

        if not isinstance(payload, dict):
            failures.append(f"{url}: unexpected body")
            return None

        if payload.get("success") is False or "error" in payload:
            error = payload.get("error") or {}
            info = error
            if isinstance(error, dict):
                info = error.get("info") or error.get("type")
            logger.warning("apilayer %s returned an error payload: %s", url, info)
            failures.append(f"{url}: {info}")
            return None

        return payload

    @staticmethod
    def _parse_payload(payload: dict[str, Any], source: VerificationSource) -> VerificationResult:
        """Any of the three validity fields is enough to call the number valid."""
        status = str(payload.get(_FIELD_VALIDATION_STATUS) or "").strip().lower()
        valid = (
            payload.get(_FIELD_VALID) is True
            or status == "valid"
            or payload.get(_FIELD_FORMAT_VALID) is True
        )
        return VerificationResult(
            valid=valid,
            name=clean_text(payload.get(_FIELD_NAME)),
            address=clean_text(payload.get(_FIELD_ADDRESS)),
            source=source,
        )
