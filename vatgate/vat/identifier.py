"""VAT identifier normalization.

Only the shape every provider needs is checked here: a two-letter country
prefix followed by at least one character. Per-country length and checksum
rules are left to the providers.
"""

from __future__ import annotations

from dataclasses import dataclass

from vatgate.errors import InvalidIdentifierError

MIN_IDENTIFIER_LENGTH = 3


@dataclass(frozen=True)
class VatIdentifier:
    """Normalized VAT identifier split into country prefix and number."""

    country_code: str
    number: str

    def __str__(self) -> str:
        return f"{self.country_code}{self.number}"

    @property
    def masked(self) -> str:
        """Identifier safe for logs: country prefix and two characters."""
        return str(self)[:4] + "X" * max(len(self.number) - 2, 0)


def normalize_vat_identifier(raw: str | None) -> VatIdentifier:
    """Strip all whitespace, uppercase and split into prefix + number.

    Raises:
        InvalidIdentifierError: input is missing or shorter than 3 characters
            once normalized.
    """
    if raw is None:
        raise InvalidIdentifierError("VAT number is missing")

    normalized = "".join(str(raw).split()).upper()
    if len(normalized) < MIN_IDENTIFIER_LENGTH:
        raise InvalidIdentifierError(
            f"VAT number must have at least {MIN_IDENTIFIER_LENGTH} characters "
            "including the country prefix"
        )

    return VatIdentifier(country_code=normalized[:2], number=normalized[2:])
