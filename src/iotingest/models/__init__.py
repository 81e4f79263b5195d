"""Record models emitted by the classification engine."""

from iotingest.models._base import IngestBaseModel, RecordBase, RecordKind
from iotingest.models.health import DeviceHealth, HealthGeneral
from iotingest.models.records import DeviceLog, DeviceState, RawCapture, Record, SensorReading

__all__ = [
    "DeviceHealth",
    "DeviceLog",
    "DeviceState",
    "HealthGeneral",
    "IngestBaseModel",
    "RawCapture",
    "Record",
    "RecordBase",
    "RecordKind",
    "SensorReading",
]
