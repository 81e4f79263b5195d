from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from iotingest.ingestion.extract import (
    extract_device_id,
    extract_log_device_id,
    extract_timestamp,
    parse_iso_timestamp,
)


def _now() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


# ------------------------------------------------------------------
# Device id
# ------------------------------------------------------------------


class TestExtractDeviceId:
    def test_device_id_key_wins_over_aliases(self) -> None:
        assert extract_device_id("t/x", {"device_id": "A", "deviceId": "B"}) == "A"

    def test_camel_case_alias(self) -> None:
        assert extract_device_id("t/x", {"deviceId": "B", "device": "C"}) == "B"

    def test_device_alias(self) -> None:
        assert extract_device_id("t/x", {"device": "C"}) == "C"

    def test_topic_fallback_prefers_device_prefix(self) -> None:
        assert extract_device_id("telemetry/device42/temp", {}) == "device42"

    def test_topic_fallback_long_segment(self) -> None:
        assert extract_device_id("t/dev00000001", {"value": 1}) == "dev00000001"

    def test_unknown_when_nothing_matches(self) -> None:
        assert extract_device_id("a/b", {}) == "unknown"

    def test_single_segment_topic_is_not_scanned(self) -> None:
        assert extract_device_id("device-lonely", {}) == "unknown"

    def test_non_string_json_id_falls_back_to_topic(self) -> None:
        assert extract_device_id("t/device9", {"device_id": 5, "deviceId": "ignored"}) == "device9"
        assert extract_device_id("a/b", {"device_id": None}) == "unknown"

    @pytest.mark.parametrize("value", [None, 3, "device_id", ["device_id"], True])
    def test_non_object_values(self, value: object) -> None:
        assert extract_device_id("plant/device-3/leaf", value) == "device-3"


class TestExtractLogDeviceId:
    @pytest.mark.parametrize(
        ("topic", "expected"),
        [
            ("diagnostics/dev1/logs", "dev1"),
            ("logs/debug/kitchen", "kitchen"),
            ("//debug", "unknown"),
            ("Logs/x", "Logs"),
        ],
    )
    def test_reserved_segments_skipped(self, topic: str, expected: str) -> None:
        assert extract_log_device_id(topic) == expected


# ------------------------------------------------------------------
# Timestamp
# ------------------------------------------------------------------


class TestExtractTimestamp:
    def test_rfc3339_string_wins_over_epoch(self) -> None:
        value = {"timestamp": "2024-01-01T00:00:00Z", "ts": 1700000000}
        assert extract_timestamp(value, _now()) == datetime(2024, 1, 1, tzinfo=UTC)

    def test_offset_converted_to_utc(self) -> None:
        result = extract_timestamp({"timestamp": "2024-01-01T02:30:00+02:00"}, _now())
        assert result == datetime(2024, 1, 1, 0, 30, tzinfo=UTC)
        assert result.utcoffset() == timedelta(0)

    def test_fractional_seconds(self) -> None:
        result = extract_timestamp({"ts": "2024-01-01T00:00:00.250Z"}, _now())
        assert result == datetime(2024, 1, 1, 0, 0, 0, 250000, tzinfo=UTC)

    def test_epoch_seconds(self) -> None:
        assert extract_timestamp({"ts": 1700000000}, _now()) == datetime.fromtimestamp(1700000000, tz=UTC)

    def test_epoch_under_timestamp_key(self) -> None:
        assert extract_timestamp({"timestamp": 0}, _now()) == datetime(1970, 1, 1, tzinfo=UTC)

    @pytest.mark.parametrize(
        "value",
        [
            {},
            {"timestamp": "yesterday"},
            {"timestamp": "2024-01-01T00:00:00"},
            {"timestamp": "2024-01-01"},
            {"timestamp": " 2024-01-01T00:00:00Z"},
            {"timestamp": "\t2024-01-01T00:00:00+00:00"},
            {"timestamp": 1.7e9},
            {"timestamp": True},
            {"timestamp": None},
            {"ts": 10**17},
            {"ts": 10**30},
            {"ts": [1700000000]},
            "2024-01-01T00:00:00Z",
            None,
        ],
    )
    def test_falls_back_to_now(self, value: object) -> None:
        assert extract_timestamp(value, _now()) == _now()

    def test_present_timestamp_key_shadows_ts(self) -> None:
        # Only the first present key is consulted.
        assert extract_timestamp({"timestamp": "bad", "ts": 1700000000}, _now()) == _now()

    def test_parse_iso_timestamp_rejects_naive(self) -> None:
        assert parse_iso_timestamp("2024-01-01T00:00:00") is None
        assert parse_iso_timestamp("2024-01-01T00:00:00-05:00") == datetime(
            2024, 1, 1, 0, 0, tzinfo=timezone(timedelta(hours=-5))
        )
