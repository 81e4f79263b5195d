"""Message classification entry point.

:func:`classify` turns one ``(topic, payload)`` pair from the bus into an
ordered list of records. It is stateless and never raises:

- undecodable (or oversized) payloads yield ``[]`` and a warning;
- decodable payloads always yield a :class:`RawCapture` first;
- JSON payloads go through the JSON classifiers, everything else becomes
  a single plain-text :class:`DeviceLog`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, NamedTuple

from iotingest._constants import DEFAULT_MAX_PAYLOAD_BYTES
from iotingest._redact import redact_for_log
from iotingest.exceptions import PayloadDecodeError
from iotingest.ingestion.classifiers import (
    JsonMessage,
    classify_device_log,
    classify_device_state,
    classify_plain_text,
    classify_sensor_readings,
)
from iotingest.ingestion.decode import decode_payload, parse_json
from iotingest.ingestion.extract import extract_device_id, extract_timestamp
from iotingest.ingestion.normalize import MISSING
from iotingest.models.records import RawCapture, Record

_LOGGER = logging.getLogger(__name__)


class JsonStage(NamedTuple):
    """One step of the JSON classification priority list.

    When an ``exclusive`` stage produces records, the stages after it are
    skipped.
    """

    name: str
    classify: Callable[[JsonMessage], list[Record]]
    exclusive: bool = False


JSON_STAGES: tuple[JsonStage, ...] = (
    JsonStage("device_state", classify_device_state, exclusive=True),
    JsonStage("sensor_readings", classify_sensor_readings),
    JsonStage("device_log", classify_device_log),
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _payload_for_log(text: str) -> Any:
    value = parse_json(text)
    return redact_for_log(text if value is MISSING else value, max_string=256)


def classify_json(topic: str, value: Any, now: datetime) -> list[Record]:
    """Run the JSON classification stages over a parsed document."""
    message = JsonMessage(
        topic=topic,
        value=value,
        device_id=extract_device_id(topic, value),
        timestamp=extract_timestamp(value, now),
    )
    records: list[Record] = []
    for stage in JSON_STAGES:
        produced = stage.classify(message)
        records.extend(produced)
        if produced and stage.exclusive:
            _LOGGER.debug("Stage %s matched on topic %s; skipping remaining stages", stage.name, topic)
            break
    return records


def classify_text(topic: str, text: str, now: datetime) -> list[Record]:
    """Route decoded *text* to the JSON path or the plain-text path."""
    value = parse_json(text)
    if value is MISSING:
        return [classify_plain_text(topic, text, now)]
    return classify_json(topic, value, now)


def classify(
    topic: str,
    payload: bytes | bytearray | memoryview,
    *,
    now: datetime | None = None,
    max_payload_bytes: int | None = DEFAULT_MAX_PAYLOAD_BYTES,
) -> list[Record]:
    """Classify one bus message into storage records.

    Parameters
    ----------
    topic
        Topic the message was published on.
    payload
        Raw message bytes.
    now
        Classification instant. Defaults to the current UTC time; records
        whose payload carries no usable timestamp are stamped with it.
    max_payload_bytes
        Upper bound on payload size, checked before decoding. ``None``
        disables the check.

    Returns
    -------
    list[Record]
        ``[]`` when the payload cannot be decoded; otherwise a
        :class:`RawCapture` followed by the classified records.
    """
    instant = now or _utcnow()
    try:
        text = decode_payload(payload, topic=topic, max_payload_bytes=max_payload_bytes)
    except PayloadDecodeError as exc:
        _LOGGER.warning("Dropping message on topic %s (%d bytes): %s", topic, exc.size, exc)
        return []

    records: list[Record] = [RawCapture(topic=topic, payload=text, timestamp=instant)]
    records.extend(classify_text(topic, text, instant))

    if _LOGGER.isEnabledFor(logging.DEBUG):
        _LOGGER.debug(
            "Parsed %d records from topic %s payload=%s",
            len(records),
            topic,
            _payload_for_log(text),
        )
    return records
