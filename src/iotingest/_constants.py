"""Constants shared by the classification engine."""

from __future__ import annotations

from typing import Final

UNKNOWN_DEVICE_ID: Final = "unknown"
"""Device id used when neither the payload nor the topic names a device."""

DEFAULT_MAX_PAYLOAD_BYTES: Final = 1024 * 1024

TOPIC_SEPARATOR: Final = "/"

# JSON keys, in lookup priority order.
DEVICE_ID_KEYS: Final = ("device_id", "deviceId", "device")
TIMESTAMP_KEYS: Final = ("timestamp", "ts")
LEVEL_KEYS: Final = ("level", "severity")
MESSAGE_KEYS: Final = ("message", "msg", "text")

STATE_KEYS: Final = ("main_state", "secondary_state", "alerts", "rssi")
HEALTH_KEY: Final = "health"
HEALTH_GENERAL_KEY: Final = "general"

# Keys never expanded into flat sensor readings.
FLAT_EXCLUDED_KEYS: Final = frozenset({"timestamp", "device_id"})

DEVICE_SEGMENT_PREFIX: Final = "device"
DEVICE_SEGMENT_MIN_LENGTH: Final = 8

# Topic segments that never name a device on plain-text log topics.
RESERVED_LOG_SEGMENTS: Final = frozenset({"diagnostics", "debug", "logs"})
