"""Provider interface shared by the VIES and apilayer adapters."""

from __future__ import annotations

from typing import Protocol

from vatgate.vat.identifier import VatIdentifier
from vatgate.vat.schemas import VerificationResult


class VerificationProvider(Protocol):
    """A remote service that can say whether a VAT identifier is registered."""

    name: str

    async def check(self, identifier: VatIdentifier) -> VerificationResult:
        """Return a verdict, or raise ProviderError."""
        ...


def clean_text(value: object) -> str | None:
    """Trim provider text fields; blanks and VIES ``---`` placeholders become None."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text == "---":
        return None
    return text
