"""Event payload and health models."""

from keystore.models.events import (
    ErrorEvent,
    EventType,
    FlushEvent,
    FlushScope,
    HealthReport,
    OperationEvent,
    Tier,
)

__all__ = [
    "ErrorEvent",
    "EventType",
    "FlushEvent",
    "FlushScope",
    "HealthReport",
    "OperationEvent",
    "Tier",
]
