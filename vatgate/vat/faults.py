"""Decides whether a provider failure is retryable.

Structured fault codes are checked first. Only when the provider gives no
known code do we fall back to searching the fault text for markers.
"""

from __future__ import annotations

from vatgate.errors import FaultKind

# VIES faultstring codes meaning "ask again later"
TRANSIENT_FAULT_CODES = frozenset({
    "SERVICE_UNAVAILABLE",
    "MS_UNAVAILABLE",
    "TIMEOUT",
    "SERVER_BUSY",
    "GLOBAL_MAX_CONCURRENT_REQ",
    "GLOBAL_MAX_CONCURRENT_REQ_TIME",
    "MS_MAX_CONCURRENT_REQ",
    "MS_MAX_CONCURRENT_REQ_TIME",
})

# VIES faultstring codes that will not change on retry
PERMANENT_FAULT_CODES = frozenset({
    "INVALID_INPUT",
    "INVALID_REQUESTER_INFO",
    "VAT_BLOCKED",
    "IP_BLOCKED",
})

# Lowercase substrings of free-text fault details meaning "ask again later"
TRANSIENT_FAULT_MARKERS = ("unavailable", "timeout", "timed out")


def classify_fault(code: str | None, detail: str | None = None) -> FaultKind:
    """Return TRANSIENT or PERMANENT for a provider fault.

    Args:
        code: Structured fault code, if the provider sent one.
        detail: Free-text fault description or HTTP reason.
    """
    if code:
        normalized = code.strip().upper()
        if normalized in TRANSIENT_FAULT_CODES:
            return FaultKind.TRANSIENT
        if normalized in PERMANENT_FAULT_CODES:
            return FaultKind.PERMANENT

    text = " ".join(part for part in (code, detail) if part).lower()
    if any(marker in text for marker in TRANSIENT_FAULT_MARKERS):
        return FaultKind.TRANSIENT
    return FaultKind.PERMANENT
