"""Command line entry point.

``iotingest listen`` subscribes to the configured MQTT topics and persists
every classified record. ``iotingest classify`` runs the engine over a
single payload and prints the resulting records as JSON lines, which is
handy for checking how a device's messages will be stored.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from collections.abc import Sequence
from typing import Any

from pydantic import TypeAdapter

from iotingest._mqtt import IngestMqttRuntime
from iotingest.config import IngestConfig
from iotingest.exceptions import BusError, IngestConfigError
from iotingest.ingestion.classify import classify
from iotingest.models import Record
from iotingest.pipeline import IngestPipeline
from iotingest.storage import LoggingSink, RecordSink, SqlRecordSink

_LOG = logging.getLogger("iotingest")

_RECORD_ADAPTER: TypeAdapter[Record] = TypeAdapter(Record)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="iotingest",
        description="Classify IoT telemetry received over MQTT into storage records.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (defaults to INGEST_LOG_LEVEL or INFO).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    listen = sub.add_parser("listen", help="Subscribe to the broker and persist records.")
    listen.add_argument("--host", help="MQTT broker host.")
    listen.add_argument("--port", type=int, help="MQTT broker port.")
    listen.add_argument(
        "--topic",
        action="append",
        dest="topics",
        help="Topic filter to subscribe to (repeatable).",
    )
    listen.add_argument("--database-url", help="SQLAlchemy database URL.")
    listen.add_argument(
        "--dry-run",
        action="store_true",
        help="Log records instead of writing them to the database.",
    )

    one = sub.add_parser("classify", help="Classify one payload and print the records.")
    one.add_argument("topic", help="Topic the payload was published on.")
    one.add_argument(
        "payload",
        nargs="?",
        help="Payload text. Read from stdin as raw bytes when omitted.",
    )
    return parser


def _config_from_args(args: argparse.Namespace) -> IngestConfig:
    overrides: dict[str, Any] = {}
    if args.log_level:
        overrides["log_level"] = args.log_level
    if getattr(args, "host", None):
        overrides["mqtt_host"] = args.host
    if getattr(args, "port", None):
        overrides["mqtt_port"] = args.port
    if getattr(args, "topics", None):
        overrides["mqtt_topics"] = tuple(args.topics)
    if getattr(args, "database_url", None):
        overrides["database_url"] = args.database_url
    return IngestConfig.from_env(**overrides)


def _build_sink(config: IngestConfig, *, dry_run: bool) -> RecordSink:
    if dry_run:
        return LoggingSink()
    if not config.database_url:
        raise IngestConfigError("A database URL is required (INGEST_DATABASE_URL or --database-url)")
    return SqlRecordSink.from_url(config.database_url)


def _run_classify(args: argparse.Namespace, config: IngestConfig) -> int:
    payload: bytes = args.payload.encode("utf-8") if args.payload is not None else sys.stdin.buffer.read()
    records = classify(args.topic, payload, max_payload_bytes=config.max_payload_bytes)
    for record in records:
        print(_RECORD_ADAPTER.dump_json(record).decode("utf-8"))
    return 0 if records else 1


def _run_listen(args: argparse.Namespace, config: IngestConfig) -> int:
    sink = _build_sink(config, dry_run=args.dry_run)
    pipeline = IngestPipeline(sink, max_payload_bytes=config.max_payload_bytes)
    runtime = IngestMqttRuntime(config, on_message=pipeline.handle_message)

    stop = threading.Event()

    def stop_handler(_signum: int, _frame: Any) -> None:
        stop.set()

    signal.signal(signal.SIGINT, stop_handler)
    signal.signal(signal.SIGTERM, stop_handler)

    runtime.start()
    try:
        while not stop.wait(1.0):
            pass
    finally:
        runtime.stop()
        if isinstance(sink, SqlRecordSink):
            sink.dispose()
        _LOG.info("Ingestion stopped: %s", pipeline.stats.as_dict())
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = _config_from_args(args)
    except IngestConfigError as exc:
        print(f"iotingest: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "classify":
            return _run_classify(args, config)
        return _run_listen(args, config)
    except (IngestConfigError, BusError) as exc:
        _LOG.error("%s", exc)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
