"""Pydantic schemas for VAT verification."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class VerificationSource(str, Enum):
    """Which provider (if any) produced the verdict."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    SECONDARY_LEGACY = "secondary-legacy"
    UNVERIFIED_DEFAULT = "unverified-default"


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    TIMEOUT = "timeout"
    TRANSIENT_ERROR = "transient-error"
    PERMANENT_ERROR = "permanent-error"


class VerificationResult(BaseModel):
    """Final verdict for one identifier. Immutable once returned."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    name: str | None = None  # registered company name
    address: str | None = None  # registered address, one line
    source: VerificationSource


class VerificationAttempt(BaseModel):
    """One provider call, kept only while the request is being handled."""

    provider: str
    started_at: datetime
    outcome: AttemptOutcome
    elapsed_ms: int
    detail: str | None = None

    @property
    def retryable(self) -> bool:
        return self.outcome in (AttemptOutcome.TIMEOUT, AttemptOutcome.TRANSIENT_ERROR)


class ValidateVatRequest(BaseModel):
    """Body of POST /api/validate-vat."""

    vat_number: str | None = None


class ValidateVatResponse(BaseModel):
    valid: bool
    name: str | None = None
    address: str | None = None
    source: VerificationSource = Field(description="Informational; clients may ignore it")

    @classmethod
    def from_result(cls, result: VerificationResult) -> ValidateVatResponse:
        return cls(
            valid=result.valid,
            name=result.name,
            address=result.address,
            source=result.source,
        )
