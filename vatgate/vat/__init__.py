"""VAT verification: identifier normalization, providers, orchestration."""

from vatgate.vat.identifier import VatIdentifier, normalize_vat_identifier
from vatgate.vat.orchestrator import VatVerifier
from vatgate.vat.schemas import VerificationResult, VerificationSource

__all__ = [
    "VatIdentifier",
    "normalize_vat_identifier",
    "VatVerifier",
    "VerificationResult",
    "VerificationSource",
]
