from __future__ import annotations

import pytest

from iotingest.config import IngestConfig
from iotingest.exceptions import IngestConfigError

_ENV_KEYS = (
    "INGEST_MQTT_HOST",
    "INGEST_MQTT_PORT",
    "INGEST_MQTT_TOPICS",
    "INGEST_MQTT_CLIENT_ID",
    "INGEST_MQTT_USERNAME",
    "INGEST_MQTT_PASSWORD",
    "INGEST_MQTT_KEEPALIVE",
    "INGEST_MQTT_TLS",
    "INGEST_MQTT_QOS",
    "INGEST_MAX_PAYLOAD_BYTES",
    "INGEST_DATABASE_URL",
    "INGEST_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    config = IngestConfig.from_env()

    assert config.mqtt_host == "localhost"
    assert config.mqtt_port == 1883
    assert config.mqtt_topics == ("#",)
    assert config.mqtt_tls is False
    assert config.max_payload_bytes == 1024 * 1024
    assert config.database_url is None


def test_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INGEST_MQTT_HOST", "broker.local")
    monkeypatch.setenv("INGEST_MQTT_PORT", "8883")
    monkeypatch.setenv("INGEST_MQTT_TOPICS", "sensors/#, diagnostics/+/logs ,")
    monkeypatch.setenv("INGEST_MQTT_TLS", "yes")
    monkeypatch.setenv("INGEST_MQTT_QOS", "1")
    monkeypatch.setenv("INGEST_MAX_PAYLOAD_BYTES", "4096")
    monkeypatch.setenv("INGEST_DATABASE_URL", "postgresql+psycopg://u:p@db/iot")
    monkeypatch.setenv("INGEST_LOG_LEVEL", "debug")

    config = IngestConfig.from_env()

    assert config.mqtt_host == "broker.local"
    assert config.mqtt_port == 8883
    assert config.mqtt_topics == ("sensors/#", "diagnostics/+/logs")
    assert config.mqtt_tls is True
    assert config.mqtt_qos == 1
    assert config.max_payload_bytes == 4096
    assert config.database_url == "postgresql+psycopg://u:p@db/iot"
    assert config.log_level == "debug"


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INGEST_MQTT_PORT", "not-a-number")
    monkeypatch.setenv("INGEST_MQTT_TOPICS", "a/#")

    config = IngestConfig.from_env(mqtt_port=1884, mqtt_topics=("b/#",))

    assert config.mqtt_port == 1884
    assert config.mqtt_topics == ("b/#",)


def test_secrets_hidden_from_repr() -> None:
    config = IngestConfig(mqtt_password="hunter2", database_url="postgresql://u:secret@db/iot")
    assert "hunter2" not in repr(config)
    assert "secret" not in repr(config)


def test_non_numeric_port_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INGEST_MQTT_PORT", "eighteen")
    with pytest.raises(IngestConfigError, match="INGEST_MQTT_PORT"):
        IngestConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"mqtt_topics": ()},
        {"mqtt_qos": 3},
        {"mqtt_port": 0},
        {"max_payload_bytes": 0},
        {"log_level": "LOUD"},
    ],
)
def test_invalid_values_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(IngestConfigError):
        IngestConfig(**kwargs)


def test_empty_topics_env_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INGEST_MQTT_TOPICS", " , ")
    with pytest.raises(IngestConfigError):
        IngestConfig.from_env()
