"""Exception hierarchy shared by the VAT and shop packages.

Provider errors are control flow for the orchestrator and never reach the
HTTP layer. The rest are converted to JSON error responses by the handlers
registered in ``vatgate.main``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class FaultKind(str, Enum):
    """Whether a provider failure is worth retrying against the same provider."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"


class VatGateError(Exception):
    """Base class for all application errors."""

    code = "vatgate_error"


class InvalidIdentifierError(VatGateError):
    """Raised when a VAT identifier fails normalization."""

    code = "invalid_identifier"

    def __init__(self, message: str = "VAT number is missing or too short") -> None:
        super().__init__(message)
        self.message = message


class ProviderError(VatGateError):
    """A verification provider could not produce a verdict."""

    def __init__(
        self,
        provider: str,
        kind: FaultKind,
        code: str,
        detail: str = "",
    ) -> None:
        super().__init__(f"{provider}: {code} ({kind.value}) {detail}".rstrip())
        self.provider = provider
        self.kind = kind
        self.code = code
        self.detail = detail

    @property
    def is_transient(self) -> bool:
        return self.kind is FaultKind.TRANSIENT


class VerificationUnavailableError(VatGateError):
    """No provider answered within budget and the policy is fail-closed."""

    code = "verification_unavailable"


class ShopifyError(VatGateError):
    """Shopify rejected a request (4xx/5xx or a body without the expected key)."""

    code = "shopify_error"

    def __init__(self, status_code: int, errors: Any) -> None:
        super().__init__(f"Shopify returned {status_code}: {errors}")
        self.status_code = status_code
        self.errors = errors


class ShopifyUnavailableError(VatGateError):
    """Shopify could not be reached (network error or timeout)."""

    code = "shopify_unavailable"
