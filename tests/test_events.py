"""Tests for the event bus and the audit subscriber."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from vatgate.audit import audit_on_event
from vatgate.events import EventBus
from vatgate.schemas.events import EventType, SystemEvent
from tests.helpers import EventRecorder


def _event(event_type: EventType = EventType.CUSTOMER_CREATED, **data) -> SystemEvent:
    return SystemEvent(event_type=event_type, data=data, source_module="tests")


class TestEventBus:
    @pytest.mark.asyncio()
    async def test_inline_dispatch_before_start(self):
        recorder = EventRecorder()
        bus = EventBus()
        bus.subscribe(recorder.record)

        await bus.emit(_event(customer_id=1))

        assert recorder.types() == ["customer.created"]

    @pytest.mark.asyncio()
    async def test_queued_dispatch_drained_on_stop(self):
        recorder = EventRecorder()
        bus = EventBus()
        bus.subscribe(recorder.record)

        await bus.start()
        assert bus.running
        await bus.emit(_event())
        await bus.emit(_event(EventType.CUSTOMER_EXISTS))
        await bus.stop()

        assert not bus.running
        assert recorder.types() == ["customer.created", "customer.exists"]

    @pytest.mark.asyncio()
    async def test_typed_subscriber_filters(self):
        recorder = EventRecorder()
        bus = EventBus()
        bus.subscribe(recorder.record, event_types=[EventType.VAT_VALIDATION_UNVERIFIED])

        await bus.emit(_event())
        await bus.emit(_event(EventType.VAT_VALIDATION_UNVERIFIED))

        assert recorder.types() == ["vat.validation_unverified"]

    @pytest.mark.asyncio()
    async def test_failing_handler_isolated(self):
        recorder = EventRecorder()
        bus = EventBus()

        async def broken(event: SystemEvent) -> None:
            raise RuntimeError("subscriber down")

        bus.subscribe(broken)
        bus.subscribe(recorder.record)

        await bus.emit(_event())

        assert recorder.types() == ["customer.created"]

    @pytest.mark.asyncio()
    async def test_unsubscribe(self):
        recorder = EventRecorder()
        bus = EventBus()
        bus.subscribe(recorder.record)
        bus.unsubscribe(recorder.record)

        await bus.emit(_event())

        assert recorder.events == []


class TestAudit:
    @pytest.mark.asyncio()
    async def test_event_logged_with_payload(self):
        event = _event(EventType.VAT_VALIDATION_COMPLETED, vat="DE12XXXXXXX", valid=True)

        with patch("vatgate.audit.audit_logger") as mock_logger:
            await audit_on_event(event)

        mock_logger.info.assert_called_once_with(
            "vat.validation_completed",
            event_id=str(event.id),
            source_module="tests",
            vat="DE12XXXXXXX",
            valid=True,
        )
