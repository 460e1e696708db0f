"""Country name → Shopify ISO-2 code lookup."""

from __future__ import annotations

DEFAULT_COUNTRY_CODE = "DE"

# Registration form sends German country names; English names are accepted too
COUNTRY_CODES: dict[str, str] = {
    "deutschland": "DE",
    "germany": "DE",
    "österreich": "AT",
    "austria": "AT",
    "schweiz": "CH",
    "switzerland": "CH",
    "frankreich": "FR",
    "france": "FR",
    "italien": "IT",
    "italy": "IT",
    "niederlande": "NL",
    "netherlands": "NL",
    "belgien": "BE",
    "belgium": "BE",
    "luxemburg": "LU",
    "luxembourg": "LU",
    "liechtenstein": "LI",
    "spanien": "ES",
    "spain": "ES",
    "portugal": "PT",
    "polen": "PL",
    "poland": "PL",
    "tschechien": "CZ",
    "czechia": "CZ",
    "dänemark": "DK",
    "denmark": "DK",
    "schweden": "SE",
    "sweden": "SE",
    "finnland": "FI",
    "finland": "FI",
    "irland": "IE",
    "ireland": "IE",
    "ungarn": "HU",
    "hungary": "HU",
    "slowakei": "SK",
    "slovakia": "SK",
    "slowenien": "SI",
    "slovenia": "SI",
    "kroatien": "HR",
    "croatia": "HR",
    "griechenland": "GR",
    "greece": "GR",
    "rumänien": "RO",
    "romania": "RO",
    "bulgarien": "BG",
    "bulgaria": "BG",
    "estland": "EE",
    "estonia": "EE",
    "lettland": "LV",
    "latvia": "LV",
    "litauen": "LT",
    "lithuania": "LT",
    "malta": "MT",
    "zypern": "CY",
    "cyprus": "CY",
}

_KNOWN_CODES = frozenset(COUNTRY_CODES.values())


def resolve_country_code(country: str | None, default: str = DEFAULT_COUNTRY_CODE) -> str:
    """Map a country name (or an ISO-2 code) to its ISO-2 code, else ``default``."""
    if not country:
        return default
    key = country.strip()
    if key.upper() in _KNOWN_CODES:
        return key.upper()
    return COUNTRY_CODES.get(key.lower(), default)
