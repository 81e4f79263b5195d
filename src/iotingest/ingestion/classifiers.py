"""Record classifiers.

Each JSON classifier inspects one decoded message and returns the records
it recognises, or an empty list. Classifiers never raise and never emit a
partially built record: a shape that does not match simply yields nothing.

Expected device state format::

    {
      "main_state": 1,
      "secondary_state": 0,
      "alerts": {},
      "rssi": -29,
      "health": "{\\"general\\":{\\"wifiSsid\\":\\"GL-S200-33f\\",\\"freeHeapSize\\":57940}}"
    }
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from iotingest._constants import (
    FLAT_EXCLUDED_KEYS,
    HEALTH_GENERAL_KEY,
    HEALTH_KEY,
    LEVEL_KEYS,
    MESSAGE_KEYS,
    STATE_KEYS,
    TOPIC_SEPARATOR,
)
from iotingest.ingestion.decode import parse_json
from iotingest.ingestion.extract import extract_log_device_id
from iotingest.ingestion.normalize import (
    MISSING,
    first_present,
    get_int32,
    get_str,
    has_any_key,
    json_array,
    json_non_empty_str,
    json_number,
    json_object,
    json_str,
)
from iotingest.models.health import DeviceHealth, HealthGeneral
from iotingest.models.records import DeviceLog, DeviceState, Record, SensorReading

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class JsonMessage:
    """A message that parsed as JSON, with its extracted shared fields.

    ``device_id`` and ``timestamp`` are extracted once per message so every
    record built from it carries the same values.
    """

    topic: str
    value: Any
    device_id: str
    timestamp: datetime

    def subtopic(self, leaf: str) -> str:
        return f"{self.topic}{TOPIC_SEPARATOR}{leaf}"

    def common(self, topic: str | None = None) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "topic": self.topic if topic is None else topic,
            "timestamp": self.timestamp,
        }


# ---------------------------------------------------------------------------
# Device state + health
# ---------------------------------------------------------------------------


def extract_health(value: Any) -> HealthGeneral | None:
    """Return the ``health.general`` section of a state message, if usable.

    ``health`` may be an object or a string holding an embedded JSON
    document. An unparsable string, a missing ``general`` object or an
    invalid section all yield ``None``.
    """
    health = first_present(value, HEALTH_KEY)
    if health is MISSING:
        return None

    embedded = json_str(health)
    if embedded is not None:
        health = parse_json(embedded)
        if health is MISSING:
            _LOGGER.debug("Ignoring unparsable embedded health document")
            return None

    general = json_object(first_present(health, HEALTH_GENERAL_KEY))
    if general is None:
        return None
    try:
        return HealthGeneral.model_validate(general)
    except ValidationError:
        _LOGGER.debug("Ignoring invalid health section", exc_info=True)
        return None


def classify_device_state(message: JsonMessage) -> list[Record]:
    """Emit a :class:`DeviceState` (plus optional :class:`DeviceHealth`).

    Triggers when the message is an object holding any of ``main_state``,
    ``secondary_state``, ``alerts`` or ``rssi``.
    """
    value = message.value
    if not has_any_key(value, *STATE_KEYS):
        return []

    alerts = first_present(value, "alerts")
    records: list[Record] = [
        DeviceState(
            **message.common(),
            main_state=get_int32(value, "main_state"),
            secondary_state=get_int32(value, "secondary_state"),
            alerts=None if alerts is MISSING else alerts,
            rssi=get_int32(value, "rssi"),
        )
    ]

    general = extract_health(value)
    if general is not None:
        records.append(DeviceHealth.from_general(general, **message.common()))
    return records


# ---------------------------------------------------------------------------
# Sensor readings
# ---------------------------------------------------------------------------


def _sensors_array_readings(message: JsonMessage) -> list[SensorReading]:
    readings: list[SensorReading] = []
    for entry in json_array(first_present(message.value, "sensors")) or ():
        name = get_str(entry, "name")
        reading = json_number(first_present(entry, "value"))
        if name is None or reading is None:
            continue
        readings.append(SensorReading(**message.common(message.subtopic(name)), value=reading))
    return readings


def _flat_readings(message: JsonMessage, *, skip: frozenset[str]) -> list[SensorReading]:
    obj = json_object(message.value)
    if obj is None:
        return []
    readings: list[SensorReading] = []
    for key, raw in obj.items():
        if key in FLAT_EXCLUDED_KEYS or key in skip:
            continue
        reading = json_number(raw)
        if reading is None:
            continue
        readings.append(SensorReading(**message.common(message.subtopic(key)), value=reading))
    return readings


def classify_sensor_readings(message: JsonMessage) -> list[Record]:
    """Emit one :class:`SensorReading` per numeric measurement.

    Three shapes are recognised and unioned:

    * a top-level numeric ``value`` (filed under the message topic);
    * a ``sensors`` array of ``{"name": ..., "value": ...}`` entries
      (filed under ``<topic>/<name>``);
    * numeric top-level keys other than ``timestamp``/``device_id``
      (filed under ``<topic>/<key>``). ``value`` is not repeated here
      once the first shape has consumed it.
    """
    records: list[Record] = []
    skip: frozenset[str] = frozenset()

    single = json_number(first_present(message.value, "value"))
    if single is not None:
        records.append(SensorReading(**message.common(), value=single))
        skip = frozenset({"value"})

    records.extend(_sensors_array_readings(message))
    records.extend(_flat_readings(message, skip=skip))
    return records


# ---------------------------------------------------------------------------
# Logs
# ---------------------------------------------------------------------------


def classify_device_log(message: JsonMessage) -> list[Record]:
    """Emit a :class:`DeviceLog` for ``{level|severity, message|msg|text}`` objects."""
    level = json_non_empty_str(first_present(message.value, *LEVEL_KEYS))
    text = json_non_empty_str(first_present(message.value, *MESSAGE_KEYS))
    if level is None or text is None:
        return []
    return [DeviceLog(**message.common(), level=level, message=text)]


def plain_text_level(topic: str, text: str) -> str:
    topic_lower = topic.lower()
    text_lower = text.lower()
    if "error" in topic_lower or "error" in text_lower:
        return "ERROR"
    if "warn" in topic_lower or "warn" in text_lower:
        return "WARN"
    if "debug" in topic_lower or "diagnostics" in topic_lower:
        return "DEBUG"
    return "INFO"


def classify_plain_text(topic: str, text: str, now: datetime) -> DeviceLog:
    """Turn a non-JSON payload into exactly one :class:`DeviceLog`."""
    return DeviceLog(
        device_id=extract_log_device_id(topic),
        topic=topic,
        timestamp=now,
        level=plain_text_level(topic, text),
        message=text,
    )
