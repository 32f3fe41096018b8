"""
Pydantic models for keystore events and health reports.

Every payload handed to an event listener is one of these models.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventType(str, Enum):
    """Names of the events a Keystore emits."""

    GET = "get"
    SET = "set"
    DELETE = "delete"
    FLUSH = "flush"
    READY = "ready"
    ERROR = "error"
    CLOSE = "close"


class Tier(str, Enum):
    """Storage tier an event refers to."""

    DURABLE = "durable"
    VOLATILE = "volatile"


class FlushScope(str, Enum):
    """What a cache flush removes."""

    ALL = "all"
    TEMP = "temp"


class OperationEvent(BaseModel):
    """
    A successful get/set/delete against one tier.

    ``value`` is None for deletes and for lookups that found nothing.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "operation": "get",
                "key": "user:42",
                "value": "{\"name\": \"Ada\"}",
                "tier": "volatile",
                "timestamp": "2024-01-01T00:00:00Z",
            }
        },
    )

    operation: EventType = Field(..., description="get, set or delete")
    key: str = Field(..., min_length=1, description="Key the operation touched")
    value: Optional[str] = Field(None, description="Value read or written, if any")
    tier: Tier = Field(..., description="Tier that served the operation")
    timestamp: datetime = Field(default_factory=_utcnow)


class ErrorEvent(BaseModel):
    """
    An adapter failure absorbed by the keystore.

    ``recoverable`` is True when the failure did not change the overall
    outcome of the operation (cache-only failures after a durable write).
    """

    model_config = ConfigDict(frozen=True)

    operation: str = Field(..., description="Operation that failed")
    key: Optional[str] = Field(None, description="Key involved, if any")
    tier: Optional[Tier] = Field(None, description="Tier that failed")
    error: str = Field(..., description="Error message")
    error_type: str = Field(..., description="Exception class name")
    recoverable: bool = Field(False)
    timestamp: datetime = Field(default_factory=_utcnow)


class FlushEvent(BaseModel):
    """A completed cache flush (manual or scheduled)."""

    model_config = ConfigDict(frozen=True)

    scope: FlushScope
    removed: Optional[int] = Field(
        None, ge=0, description="Keys removed; None when the server does not report it"
    )
    timestamp: datetime = Field(default_factory=_utcnow)


class HealthReport(BaseModel):
    """
    Keystore health.

    Used to verify both tiers answer.
    """

    status: str = Field(
        ...,
        description="Overall health status (healthy, degraded, unhealthy)",
    )
    ready: bool = Field(..., description="Whether connect() completed")
    components: dict[str, str] = Field(
        ...,
        description="Health status of individual tiers",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "ready": True,
                "components": {"durable": "healthy", "volatile": "healthy"},
            }
        }
    )
