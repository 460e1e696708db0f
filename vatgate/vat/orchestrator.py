"""VAT verification orchestrator: primary, one retry, secondary, then decide.

Steps for one request:
1. Normalize the identifier (invalid → InvalidIdentifierError, no calls made)
2. Start a single TimeBudget; every attempt is capped by it
3. VIES; on a transient fault or timeout, exactly one more VIES attempt
4. apilayer, if budget remains
5. No verdict → unverified default (fail open) or VerificationUnavailableError

Attempts are strictly sequential. Provider errors never leave this module.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone

from vatgate.config import UnavailablePolicy, VerificationSettings
from vatgate.errors import ProviderError, VerificationUnavailableError
from vatgate.events import EventBus
from vatgate.schemas.events import EventType, SystemEvent
from vatgate.vat.budget import Clock, TimeBudget, run_with_timeout
from vatgate.vat.identifier import VatIdentifier, normalize_vat_identifier
from vatgate.vat.providers.base import VerificationProvider
from vatgate.vat.schemas import (
    AttemptOutcome,
    VerificationAttempt,
    VerificationResult,
    VerificationSource,
)

logger = logging.getLogger(__name__)

UNVERIFIED_DEFAULT = VerificationResult(
    valid=True,
    name=None,
    address=None,
    source=VerificationSource.UNVERIFIED_DEFAULT,
)


class VatVerifier:
    """Sequences provider attempts for one identifier under a shared deadline."""

    def __init__(
        self,
        primary: VerificationProvider,
        secondary: VerificationProvider,
        settings: VerificationSettings,
        events: EventBus | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self._primary = primary
        self._secondary = secondary
        self._settings = settings
        self._events = events
        self._clock = clock

    async def verify(self, raw: str | None) -> VerificationResult:
        """Return the verdict for ``raw``.

        Raises:
            InvalidIdentifierError: before any provider is contacted.
            VerificationUnavailableError: only under the fail_closed policy.
        """
        identifier = normalize_vat_identifier(raw)
        budget = TimeBudget.start(self._settings.vat_total_budget, clock=self._clock)
        attempts: list[VerificationAttempt] = []

        await self._emit(EventType.VAT_VALIDATION_REQUESTED, {"vat": identifier.masked})

        result = await self._try_primary(identifier, budget, attempts)
        if result is None:
            result = await self._attempt(
                self._secondary, identifier, budget, self._settings.vat_secondary_cap, attempts
            )
        if result is None:
            result = await self._decide(identifier, attempts)

        logger.info(
            "VAT %s verified: valid=%s source=%s attempts=%d",
            identifier.masked,
            result.valid,
            result.source.value,
            len(attempts),
        )
        await self._emit(EventType.VAT_VALIDATION_COMPLETED, {
            "vat": identifier.masked,
            "valid": result.valid,
            "source": result.source.value,
            "attempts": len(attempts),
        })
        return result

    async def _try_primary(
        self,
        identifier: VatIdentifier,
        budget: TimeBudget,
        attempts: list[VerificationAttempt],
    ) -> VerificationResult | None:
        result = await self._attempt(
            self._primary, identifier, budget, self._settings.vat_primary_cap, attempts
        )
        if result is not None or not attempts or not attempts[-1].retryable:
            return result

        logger.info("Retrying %s for VAT %s", self._primary.name, identifier.masked)
        return await self._attempt(
            self._primary, identifier, budget, self._settings.vat_retry_cap, attempts
        )

    async def _attempt(
        self,
        provider: VerificationProvider,
        identifier: VatIdentifier,
        budget: TimeBudget,
        local_cap: float,
        attempts: list[VerificationAttempt],
    ) -> VerificationResult | None:
        """Run one capped provider call and record it. None means no verdict."""
        if budget.exhausted:
            logger.warning(
                "Time budget exhausted before %s attempt for VAT %s",
                provider.name,
                identifier.masked,
            )
            return None

        timeout = budget.cap(local_cap)
        started_at = datetime.now(timezone.utc)
        started = self._clock()
        result: VerificationResult | None = None
        detail: str | None = None

        try:
            result = await run_with_timeout(provider.check(identifier), timeout)
            outcome = AttemptOutcome.SUCCESS
        except asyncio.TimeoutError:
            outcome = AttemptOutcome.TIMEOUT
            detail = f"no answer within {timeout:.1f}s"
        except ProviderError as exc:
            outcome = (
                AttemptOutcome.TRANSIENT_ERROR if exc.is_transient else AttemptOutcome.PERMANENT_ERROR
            )
            detail = exc.code
        except Exception:
            logger.exception("Unexpected error from %s for VAT %s", provider.name, identifier.masked)
            outcome = AttemptOutcome.PERMANENT_ERROR
            detail = "unexpected_error"

        attempt = VerificationAttempt(
            provider=provider.name,
            started_at=started_at,
            outcome=outcome,
            elapsed_ms=int((self._clock() - started) * 1000),
            detail=detail,
        )
        attempts.append(attempt)

        if outcome is AttemptOutcome.SUCCESS:
            logger.info("%s answered in %dms", provider.name, attempt.elapsed_ms)
        else:
            logger.warning(
                "%s attempt failed for VAT %s: %s (%s) after %dms",
                provider.name,
                identifier.masked,
                outcome.value,
                detail,
                attempt.elapsed_ms,
            )

        await self._emit(EventType.VAT_PROVIDER_ATTEMPT, {
            "vat": identifier.masked,
            "provider": attempt.provider,
            "outcome": attempt.outcome.value,
            "elapsed_ms": attempt.elapsed_ms,
            "detail": attempt.detail,
        })
        return result

    async def _decide(
        self,
        identifier: VatIdentifier,
        attempts: list[VerificationAttempt],
    ) -> VerificationResult:
        """No provider answered: apply the configured unavailability policy."""
        summary = ", ".join(f"{a.provider}:{a.outcome.value}" for a in attempts) or "none"
        await self._emit(EventType.VAT_VALIDATION_UNVERIFIED, {
            "vat": identifier.masked,
            "policy": self._settings.vat_unavailable_policy.value,
            "attempts": summary,
        })

        if self._settings.vat_unavailable_policy is UnavailablePolicy.FAIL_CLOSED:
            logger.error("VAT %s could not be verified (attempts: %s)", identifier.masked, summary)
            raise VerificationUnavailableError("VAT verification is currently unavailable")

        logger.warning(
            "VAT %s could not be verified, accepting unverified (attempts: %s)",
            identifier.masked,
            summary,
        )
        return UNVERIFIED_DEFAULT

    async def _emit(self, event_type: EventType, data: dict) -> None:
        if self._events is None:
            return
        await self._events.emit(SystemEvent(
            event_type=event_type,
            data=data,
            source_module="vat.orchestrator",
        ))
