"""iotingest - classification and normalization engine for IoT telemetry."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("iotingest")
except PackageNotFoundError:
    __version__ = "0+local"
from iotingest.config import IngestConfig
from iotingest.exceptions import (
    BusError,
    IngestConfigError,
    IngestError,
    PayloadDecodeError,
    PayloadTooLargeError,
    StorageError,
)
from iotingest.ingestion.classify import classify
from iotingest.models import (
    DeviceHealth,
    DeviceLog,
    DeviceState,
    RawCapture,
    Record,
    RecordKind,
    SensorReading,
)
from iotingest.pipeline import IngestPipeline, PipelineStats
from iotingest.storage import LoggingSink, MemorySink, RecordSink, SqlRecordSink, persist_record

__all__ = [
    "__version__",
    "BusError",
    "DeviceHealth",
    "DeviceLog",
    "DeviceState",
    "IngestConfig",
    "IngestConfigError",
    "IngestError",
    "IngestPipeline",
    "LoggingSink",
    "MemorySink",
    "PayloadDecodeError",
    "PayloadTooLargeError",
    "PipelineStats",
    "RawCapture",
    "Record",
    "RecordKind",
    "RecordSink",
    "SensorReading",
    "SqlRecordSink",
    "StorageError",
    "classify",
    "persist_record",
]
