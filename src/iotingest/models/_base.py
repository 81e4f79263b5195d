"""Base model for ingestion records.

Every record inherits from :class:`RecordBase`, which provides:

* ``frozen=True`` so a record cannot change after classification.
* The fields shared by every record kind (``device_id``, ``topic``,
  ``timestamp``).
* A ``timestamp`` validator that always yields a UTC-aware datetime.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RecordKind(StrEnum):
    RAW_CAPTURE = "raw_capture"
    SENSOR_READING = "sensor_reading"
    DEVICE_LOG = "device_log"
    DEVICE_STATE = "device_state"
    DEVICE_HEALTH = "device_health"


class IngestBaseModel(BaseModel):
    """Immutable pydantic model used for everything the engine emits."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class RecordBase(IngestBaseModel):
    """Fields common to every record kind."""

    device_id: str = Field(..., description="Device the record belongs to")
    topic: str = Field(..., description="Topic the record is filed under")
    timestamp: datetime = Field(..., description="Observation instant (UTC)")

    @field_validator("timestamp")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
