"""Internal MQTT runtime that feeds bus messages into the ingestion pipeline."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from iotingest.config import IngestConfig
from iotingest.exceptions import BusError

MessageHandler = Callable[[str, bytes], Any]


class IngestMqttRuntime:
    """Threaded paho-mqtt runtime that hands every message to *on_message*.

    *on_message* runs on the paho network thread. Exceptions it raises are
    logged and swallowed so one bad message never stops the listener.
    """

    def __init__(
        self,
        config: IngestConfig,
        *,
        on_message: MessageHandler,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._on_message = on_message
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def _build_client(self) -> mqtt.Client:
        config = self._config
        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=config.mqtt_client_id,
            protocol=mqtt.MQTTv311,
        )
        client.enable_logger(self._logger)
        if config.mqtt_username:
            client.username_pw_set(config.mqtt_username, config.mqtt_password)
        if config.mqtt_tls:
            client.tls_set()
        return client

    def _handle_connect(
        self,
        c: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.value != 0:
            self._logger.warning("MQTT connect failed: %s", reason_code)
            return
        self._logger.info("MQTT connected to %s:%s", self._config.mqtt_host, self._config.mqtt_port)
        for topic in self._config.mqtt_topics:
            self._logger.debug("MQTT subscribing topic=%s qos=%s", topic, self._config.mqtt_qos)
            c.subscribe(topic, qos=self._config.mqtt_qos)

    def _handle_message(self, _c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        try:
            self._on_message(msg.topic, msg.payload)
        except Exception:
            self._logger.warning("MQTT message handling failed topic=%s", msg.topic, exc_info=True)

    def _handle_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if self._running:
            self._logger.warning("MQTT disconnected: %s", reason_code)

    def start(self) -> None:
        """Connect, subscribe on connect, and start the network loop thread.

        Raises
        ------
        BusError
            When the initial connection attempt fails.
        """
        self.stop()
        config = self._config
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s topics=%s client_id=%s",
            config.mqtt_host,
            config.mqtt_port,
            ",".join(config.mqtt_topics),
            config.mqtt_client_id or "<broker-assigned>",
        )

        client = self._build_client()
        client.on_connect = self._handle_connect
        client.on_message = self._handle_message
        client.on_disconnect = self._handle_disconnect

        try:
            client.connect(config.mqtt_host, config.mqtt_port, keepalive=config.mqtt_keepalive)
        except OSError as exc:
            raise BusError(f"Could not connect to MQTT broker {config.mqtt_host}:{config.mqtt_port}: {exc}") from exc
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
