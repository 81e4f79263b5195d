"""Record persistence.

The classification engine never talks to storage itself. Callers hand its
records to a :class:`RecordSink`, which exposes one ``persist_*`` method per
record kind. Each method accepts one fully built record and either returns
or raises :class:`~iotingest.exceptions.StorageError`.

:class:`SqlRecordSink` writes to the hypertables of the telemetry database
(``socket_reads``, ``sensor_readings``, ``device_logs``, ``device_states``,
``device_health``). Creating that schema is left to the database
provisioning scripts; :data:`METADATA` only describes the columns written.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    Double,
    Integer,
    MetaData,
    Table,
    Text,
    create_engine,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from iotingest.exceptions import StorageError
from iotingest.models import (
    DeviceHealth,
    DeviceLog,
    DeviceState,
    RawCapture,
    Record,
    RecordKind,
    SensorReading,
)

_LOGGER = logging.getLogger(__name__)


class RecordSink(Protocol):
    """Storage contract: one persist operation per record kind."""

    def persist_raw_capture(self, record: RawCapture) -> None: ...

    def persist_sensor_reading(self, record: SensorReading) -> None: ...

    def persist_device_log(self, record: DeviceLog) -> None: ...

    def persist_device_state(self, record: DeviceState) -> None: ...

    def persist_device_health(self, record: DeviceHealth) -> None: ...


_PERSIST_METHODS: dict[RecordKind, str] = {
    RecordKind.RAW_CAPTURE: "persist_raw_capture",
    RecordKind.SENSOR_READING: "persist_sensor_reading",
    RecordKind.DEVICE_LOG: "persist_device_log",
    RecordKind.DEVICE_STATE: "persist_device_state",
    RecordKind.DEVICE_HEALTH: "persist_device_health",
}


def persist_record(sink: RecordSink, record: Record) -> None:
    """Dispatch *record* to the sink method for its kind."""
    getattr(sink, _PERSIST_METHODS[record.kind])(record)


# ---------------------------------------------------------------------------
# In-process sinks
# ---------------------------------------------------------------------------


class MemorySink:
    """Keeps every persisted record in arrival order."""

    def __init__(self) -> None:
        self.records: list[Record] = []

    def of_kind(self, kind: RecordKind) -> list[Record]:
        return [record for record in self.records if record.kind == kind]

    def clear(self) -> None:
        self.records.clear()

    def persist_raw_capture(self, record: RawCapture) -> None:
        self.records.append(record)

    def persist_sensor_reading(self, record: SensorReading) -> None:
        self.records.append(record)

    def persist_device_log(self, record: DeviceLog) -> None:
        self.records.append(record)

    def persist_device_state(self, record: DeviceState) -> None:
        self.records.append(record)

    def persist_device_health(self, record: DeviceHealth) -> None:
        self.records.append(record)


class LoggingSink:
    """Logs each record as JSON instead of storing it (dry runs)."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _LOGGER

    def _emit(self, record: Record) -> None:
        self._logger.info("%s %s", record.kind, record.model_dump_json(exclude={"kind"}))

    def persist_raw_capture(self, record: RawCapture) -> None:
        self._emit(record)

    def persist_sensor_reading(self, record: SensorReading) -> None:
        self._emit(record)

    def persist_device_log(self, record: DeviceLog) -> None:
        self._emit(record)

    def persist_device_state(self, record: DeviceState) -> None:
        self._emit(record)

    def persist_device_health(self, record: DeviceHealth) -> None:
        self._emit(record)


# ---------------------------------------------------------------------------
# SQL sink
# ---------------------------------------------------------------------------

METADATA = MetaData()

_JSON_VALUE = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")

SOCKET_READS = Table(
    "socket_reads",
    METADATA,
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Column("topic", Text, nullable=False),
    Column("payload", Text, nullable=False),
)

SENSOR_READINGS = Table(
    "sensor_readings",
    METADATA,
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Column("device_id", Text, nullable=False),
    Column("topic", Text, nullable=False),
    Column("value", Double, nullable=False),
)

DEVICE_LOGS = Table(
    "device_logs",
    METADATA,
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Column("device_id", Text, nullable=False),
    Column("level", Text, nullable=False),
    Column("message", Text, nullable=False),
    Column("topic", Text, nullable=False),
)

DEVICE_STATES = Table(
    "device_states",
    METADATA,
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Column("device_id", Text, nullable=False),
    Column("topic", Text, nullable=False),
    Column("main_state", Integer),
    Column("secondary_state", Integer),
    Column("alerts", _JSON_VALUE),
    Column("rssi", Integer),
)

DEVICE_HEALTH = Table(
    "device_health",
    METADATA,
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Column("device_id", Text, nullable=False),
    Column("topic", Text, nullable=False),
    Column("wifi_ssid", Text),
    Column("free_heap_size", BigInteger),
    Column("min_heap_size", BigInteger),
    Column("unexpected_reset_counter", Integer),
    Column("last_reset_reason", Text),
    Column("wifi_connect_counter", Integer),
    Column("cloud_connect_counter", Integer),
    Column("last_wifi_connection_ts", BigInteger),
    Column("last_cloud_connection_ts", BigInteger),
)


def _columns(table: Table) -> set[str]:
    return {column.name for column in table.columns}


def _offending_field(exc: SQLAlchemyError) -> str | None:
    # psycopg exposes the failing column through the driver diagnostics.
    diag = getattr(getattr(exc, "orig", None), "diag", None)
    column = getattr(diag, "column_name", None)
    return column if isinstance(column, str) and column else None


class SqlRecordSink:
    """Inserts records through a SQLAlchemy engine, one transaction per record."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, url: str, **engine_kwargs: Any) -> SqlRecordSink:
        engine_kwargs.setdefault("pool_pre_ping", True)
        engine = create_engine(url, **engine_kwargs)
        _LOGGER.info("Created storage engine dialect=%s", engine.dialect.name)
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    def dispose(self) -> None:
        self._engine.dispose()

    def _insert(self, table: Table, record: Record) -> None:
        row = record.model_dump(include=_columns(table))
        try:
            with self._engine.begin() as conn:
                conn.execute(table.insert(), row)
        except SQLAlchemyError as exc:
            field = _offending_field(exc)
            raise StorageError(
                f"Failed to insert {record.kind} for device {record.device_id} "
                f"at {record.timestamp.isoformat()}: {exc}",
                kind=str(record.kind),
                device_id=record.device_id,
                timestamp=record.timestamp,
                field=field,
            ) from exc
        _LOGGER.debug("Inserted %s: device=%s topic=%s", record.kind, record.device_id, record.topic)

    def persist_raw_capture(self, record: RawCapture) -> None:
        self._insert(SOCKET_READS, record)

    def persist_sensor_reading(self, record: SensorReading) -> None:
        self._insert(SENSOR_READINGS, record)

    def persist_device_log(self, record: DeviceLog) -> None:
        self._insert(DEVICE_LOGS, record)

    def persist_device_state(self, record: DeviceState) -> None:
        self._insert(DEVICE_STATES, record)

    def persist_device_health(self, record: DeviceHealth) -> None:
        self._insert(DEVICE_HEALTH, record)
