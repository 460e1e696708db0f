"""Audit subscriber — writes every SystemEvent to the structured log.

Registered as a global subscriber (receives ALL events). Nothing is
persisted; the log stream is the audit trail.
"""

from __future__ import annotations

import structlog

from vatgate.schemas.events import SystemEvent

audit_logger = structlog.get_logger("vatgate.audit")


async def audit_on_event(event: SystemEvent) -> None:
    """Log a SystemEvent with its payload as structured key/value pairs."""
    audit_logger.info(
        event.event_type.value,
        event_id=str(event.id),
        source_module=event.source_module,
        **event.data,
    )
