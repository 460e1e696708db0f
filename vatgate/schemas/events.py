"""SystemEvent schema — the event type that flows through the event bus.

VAT checks and customer registrations emit SystemEvents. The audit
subscriber consumes them asynchronously.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the system."""

    # VAT verification
    VAT_VALIDATION_REQUESTED = "vat.validation_requested"
    VAT_PROVIDER_ATTEMPT = "vat.provider_attempt"
    VAT_VALIDATION_COMPLETED = "vat.validation_completed"
    VAT_VALIDATION_UNVERIFIED = "vat.validation_unverified"

    # Customers
    CUSTOMER_LOOKUP = "customer.lookup"
    CUSTOMER_LOOKUP_FAILED = "customer.lookup_failed"
    CUSTOMER_EXISTS = "customer.exists"
    CUSTOMER_CREATED = "customer.created"
    CUSTOMER_REGISTRATION_FAILED = "customer.registration_failed"

    # System
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"


class SystemEvent(BaseModel):
    """Event published on the bus. Immutable once created."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    # Metadata
    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}
