"""Field extractors shared by the classifiers.

Both extractors are total: they always produce a value and fall back to a
sentinel (device id) or to the classification instant (timestamp).
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from iotingest._constants import (
    DEVICE_ID_KEYS,
    DEVICE_SEGMENT_MIN_LENGTH,
    DEVICE_SEGMENT_PREFIX,
    RESERVED_LOG_SEGMENTS,
    TIMESTAMP_KEYS,
    TOPIC_SEPARATOR,
    UNKNOWN_DEVICE_ID,
)
from iotingest.ingestion.normalize import MISSING, first_present, json_int, json_str


def topic_segments(topic: str) -> list[str]:
    return topic.split(TOPIC_SEPARATOR)


def _device_from_topic(topic: str) -> str | None:
    segments = topic_segments(topic)
    # A bare single-segment topic never names a device.
    if len(segments) < 2:
        return None
    # A ``device`` prefix beats a merely long segment.
    for segment in segments:
        if segment.startswith(DEVICE_SEGMENT_PREFIX):
            return segment
    for segment in segments:
        if len(segment) >= DEVICE_SEGMENT_MIN_LENGTH:
            return segment
    return None


def extract_device_id(topic: str, value: Any) -> str:
    """Return the device id for a JSON message.

    Priority:

    1. ``device_id``, ``deviceId`` or ``device`` in *value*; the first key
       present is used when it holds a string.
    2. The first topic segment starting with ``device``, else the first
       segment at least eight characters long.
    3. ``"unknown"``.
    """
    candidate = json_str(first_present(value, *DEVICE_ID_KEYS))
    if candidate is not None:
        return candidate
    return _device_from_topic(topic) or UNKNOWN_DEVICE_ID


def extract_log_device_id(topic: str) -> str:
    """Return the device id for a plain-text log topic.

    The first non-empty segment that is not a reserved log segment
    (``diagnostics``, ``debug``, ``logs``) wins.
    """
    for segment in topic_segments(topic):
        if segment and segment not in RESERVED_LOG_SEGMENTS:
            return segment
    return UNKNOWN_DEVICE_ID


def parse_iso_timestamp(text: str) -> datetime | None:
    """Parse an RFC 3339 / ISO 8601 string carrying an explicit UTC offset."""
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        return None
    return parsed.astimezone(UTC)


def parse_epoch_seconds(value: Any) -> datetime | None:
    seconds = json_int(value)
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def extract_timestamp(value: Any, now: datetime) -> datetime:
    """Return the observation instant embedded in *value*, or *now*.

    ``timestamp`` takes precedence over ``ts`` by key presence. Strings are
    parsed as ISO 8601 with an offset, integers as Unix epoch seconds.
    Anything that does not parse falls back to *now*.
    """
    raw = first_present(value, *TIMESTAMP_KEYS)
    if raw is MISSING:
        return now

    text = json_str(raw)
    if text is not None:
        parsed = parse_iso_timestamp(text)
        if parsed is not None:
            return parsed

    from_epoch = parse_epoch_seconds(raw)
    if from_epoch is not None:
        return from_epoch

    return now
