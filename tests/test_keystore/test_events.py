"""Tests for the event emitter and event models."""

import pytest
from pydantic import ValidationError

from keystore.events import EventEmitter
from keystore.models.events import (
    ErrorEvent,
    EventType,
    FlushEvent,
    FlushScope,
    OperationEvent,
    Tier,
)


class TestEventEmitter:
    """Test suite for EventEmitter."""

    @pytest.mark.asyncio
    async def test_sync_and_async_listeners(self):
        emitter = EventEmitter()
        seen = []

        async def async_listener(payload):
            seen.append(("async", payload))

        emitter.on("set", lambda payload: seen.append(("sync", payload)))
        emitter.on(EventType.SET, async_listener)

        delivered = await emitter.emit(EventType.SET, "payload")

        assert delivered == 2
        assert seen == [("sync", "payload"), ("async", "payload")]

    @pytest.mark.asyncio
    async def test_event_without_payload(self):
        emitter = EventEmitter()
        calls = []
        emitter.on("ready", lambda: calls.append(True))

        await emitter.emit("ready")

        assert calls == [True]

    @pytest.mark.asyncio
    async def test_no_listeners(self):
        assert await EventEmitter().emit("get", object()) == 0

    @pytest.mark.asyncio
    async def test_off(self):
        emitter = EventEmitter()
        calls = []
        listener = emitter.on("get", calls.append)

        assert emitter.off("get", listener) is True
        assert emitter.off("get", listener) is False

        await emitter.emit("get", 1)
        assert calls == []
        assert emitter.listener_count("get") == 0

    @pytest.mark.asyncio
    async def test_failing_listener_is_isolated(self):
        """Test one failing listener does not stop the others."""
        emitter = EventEmitter()
        calls = []

        def broken(payload):
            raise RuntimeError("bug")

        emitter.on("set", broken)
        emitter.on("set", calls.append)

        delivered = await emitter.emit("set", 1)

        assert delivered == 1
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_listener_may_unsubscribe_itself(self):
        emitter = EventEmitter()
        calls = []

        def once(payload):
            calls.append(payload)
            emitter.off("set", once)

        emitter.on("set", once)
        await emitter.emit("set", 1)
        await emitter.emit("set", 2)

        assert calls == [1]


class TestEventModels:
    """Test suite for event payload models."""

    def test_operation_event(self):
        event = OperationEvent(operation="get", key="k", value=None, tier="volatile")

        assert event.operation is EventType.GET
        assert event.tier is Tier.VOLATILE
        assert event.value is None
        assert event.timestamp.tzinfo is not None

    def test_operation_event_requires_key(self):
        with pytest.raises(ValidationError):
            OperationEvent(operation="get", key="", tier="durable")

    def test_operation_event_is_frozen(self):
        event = OperationEvent(operation="set", key="k", value="v", tier="durable")

        with pytest.raises(ValidationError):
            event.value = "other"

    def test_error_event_serializes(self):
        event = ErrorEvent(
            operation="set",
            key="k",
            tier=Tier.VOLATILE,
            error="down",
            error_type="CacheError",
            recoverable=True,
        )

        data = event.model_dump(mode="json")

        assert data["tier"] == "volatile"
        assert data["recoverable"] is True

    def test_flush_event(self):
        event = FlushEvent(scope="temp", removed=3)

        assert event.scope is FlushScope.TEMP
        assert event.removed == 3
