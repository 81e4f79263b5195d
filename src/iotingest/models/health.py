"""Device health record and the ``health.general`` payload section.

Devices report health as a ``health`` field next to their state fields.
The field holds either an object or a string with an embedded JSON
document; both carry a ``general`` object with camelCase counters::

    {"general": {"wifiSsid": "GL-S200-33f", "freeHeapSize": 57940, ...}}

:class:`HealthGeneral` maps that object onto snake_case fields via
``alias_generator=to_camel``. A missing or mistyped key becomes ``None``
without invalidating the rest of the section.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from iotingest.ingestion.normalize import json_int, json_int32, json_str
from iotingest.models._base import RecordBase, RecordKind


class HealthGeneral(BaseModel):
    """The ``general`` object of a health report."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
    )

    wifi_ssid: str | None = None
    free_heap_size: int | None = None
    min_heap_size: int | None = None
    unexpected_reset_counter: int | None = None
    last_reset_reason: str | None = None
    wifi_connect_counter: int | None = None
    cloud_connect_counter: int | None = None
    last_wifi_connection_ts: int | None = None
    last_cloud_connection_ts: int | None = None

    @field_validator("wifi_ssid", "last_reset_reason", mode="before")
    @classmethod
    def _strict_str(cls, value: Any) -> str | None:
        return json_str(value)

    @field_validator(
        "free_heap_size",
        "min_heap_size",
        "last_wifi_connection_ts",
        "last_cloud_connection_ts",
        mode="before",
    )
    @classmethod
    def _strict_int64(cls, value: Any) -> int | None:
        return json_int(value)

    @field_validator(
        "unexpected_reset_counter",
        "wifi_connect_counter",
        "cloud_connect_counter",
        mode="before",
    )
    @classmethod
    def _strict_int32(cls, value: Any) -> int | None:
        return json_int32(value)


class DeviceHealth(RecordBase):
    """Diagnostic counters reported alongside a device state."""

    kind: Literal["device_health"] = RecordKind.DEVICE_HEALTH

    wifi_ssid: str | None = None
    free_heap_size: int | None = None
    min_heap_size: int | None = None
    unexpected_reset_counter: int | None = None
    last_reset_reason: str | None = None
    wifi_connect_counter: int | None = None
    cloud_connect_counter: int | None = None
    last_wifi_connection_ts: int | None = None
    last_cloud_connection_ts: int | None = None

    @classmethod
    def from_general(cls, general: HealthGeneral, **common: Any) -> DeviceHealth:
        """Build a record from a parsed ``general`` section plus the common fields."""
        return cls(**common, **general.model_dump())
