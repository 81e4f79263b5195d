"""Runtime configuration for iotingest."""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Callable
from typing import Any

from iotingest._constants import DEFAULT_MAX_PAYLOAD_BYTES
from iotingest.exceptions import IngestConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_topics(value: str) -> tuple[str, ...]:
    return tuple(topic.strip() for topic in value.split(",") if topic.strip())


def _parse_number(env_key: str, value: str, parser: Callable[[str], Any]) -> Any:
    try:
        return parser(value)
    except ValueError as exc:
        raise IngestConfigError(f"{env_key} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class IngestConfig:
    """Listener configuration.

    Parameters
    ----------
    mqtt_host : str
        Broker host name.
    mqtt_port : int
        Broker port.
    mqtt_topics : tuple[str, ...]
        Topic filters to subscribe to. Defaults to every topic (``#``).
    mqtt_client_id : str
        Client identifier. Empty lets the broker assign one.
    mqtt_username : str or None
        Broker user name, if the broker requires one.
    mqtt_password : str or None
        Broker password.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_tls : bool
        Connect with TLS using the system CA bundle.
    mqtt_qos : int
        Subscription QoS level (0, 1 or 2).
    max_payload_bytes : int
        Payloads larger than this are dropped before decoding.
    database_url : str or None
        SQLAlchemy database URL for the record sink.
    log_level : str
        Root log level used by the command line entry point.
    """

    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topics: tuple[str, ...] = ("#",)
    mqtt_client_id: str = ""
    mqtt_username: str | None = None
    mqtt_password: str | None = dataclasses.field(default=None, repr=False)
    mqtt_keepalive: int = 60
    mqtt_tls: bool = False
    mqtt_qos: int = 0
    max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES
    database_url: str | None = dataclasses.field(default=None, repr=False)
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.mqtt_topics:
            raise IngestConfigError("At least one MQTT topic is required")
        if self.mqtt_qos not in (0, 1, 2):
            raise IngestConfigError(f"mqtt_qos must be 0, 1 or 2, got {self.mqtt_qos}")
        if not 0 < self.mqtt_port < 65536:
            raise IngestConfigError(f"mqtt_port out of range: {self.mqtt_port}")
        if self.max_payload_bytes <= 0:
            raise IngestConfigError("max_payload_bytes must be positive")
        if self.log_level.upper() not in logging.getLevelNamesMapping():
            raise IngestConfigError(f"Unknown log level {self.log_level!r}")

    @classmethod
    def from_env(cls, **overrides: Any) -> IngestConfig:
        """Create configuration from ``INGEST_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        IngestConfigError
            When a numeric variable does not parse or a value is out of range.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "INGEST_MQTT_HOST": "mqtt_host",
            "INGEST_MQTT_CLIENT_ID": "mqtt_client_id",
            "INGEST_MQTT_USERNAME": "mqtt_username",
            "INGEST_MQTT_PASSWORD": "mqtt_password",
            "INGEST_DATABASE_URL": "database_url",
            "INGEST_LOG_LEVEL": "log_level",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_INT_MAP = {
            "INGEST_MQTT_PORT": "mqtt_port",
            "INGEST_MQTT_KEEPALIVE": "mqtt_keepalive",
            "INGEST_MQTT_QOS": "mqtt_qos",
            "INGEST_MAX_PAYLOAD_BYTES": "max_payload_bytes",
        }
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _parse_number(env_key, val, int)

        topics_env = env.get("INGEST_MQTT_TOPICS")
        if topics_env is not None and "mqtt_topics" not in overrides:
            config_kwargs["mqtt_topics"] = _env_topics(topics_env)

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("INGEST_MQTT_TLS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
