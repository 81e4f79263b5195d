"""Records produced by the classification engine."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import Field

from iotingest._constants import UNKNOWN_DEVICE_ID
from iotingest.models._base import RecordBase, RecordKind
from iotingest.models.health import DeviceHealth


class RawCapture(RecordBase):
    """Verbatim decoded text of a message, stored for every decodable payload."""

    kind: Literal["raw_capture"] = RecordKind.RAW_CAPTURE

    device_id: str = UNKNOWN_DEVICE_ID
    """Raw captures are filed by topic only."""

    payload: str


class SensorReading(RecordBase):
    """A single numeric measurement."""

    kind: Literal["sensor_reading"] = RecordKind.SENSOR_READING

    value: float


class DeviceLog(RecordBase):
    kind: Literal["device_log"] = RecordKind.DEVICE_LOG

    level: str
    message: str


class DeviceState(RecordBase):
    """Discrete status fields and signal strength reported by a device."""

    kind: Literal["device_state"] = RecordKind.DEVICE_STATE

    main_state: int | None = None
    secondary_state: int | None = None
    alerts: Any = None
    """Arbitrary JSON value, stored as-is."""
    rssi: int | None = None


Record = Annotated[
    RawCapture | SensorReading | DeviceLog | DeviceState | DeviceHealth,
    Field(discriminator="kind"),
]
"""Tagged union of every record kind."""
