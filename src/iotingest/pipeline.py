"""Per-message ingestion pipeline: classify, then persist every record."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime

from iotingest._constants import DEFAULT_MAX_PAYLOAD_BYTES
from iotingest.exceptions import StorageError
from iotingest.ingestion.classify import classify
from iotingest.models import Record, RecordKind
from iotingest.storage import RecordSink, persist_record

_LOGGER = logging.getLogger(__name__)


@dataclass
class PipelineStats:
    """Running counters for one pipeline instance."""

    messages: int = 0
    records: int = 0
    decode_failures: int = 0
    storage_errors: int = 0
    by_kind: Counter[str] = field(default_factory=Counter)

    def as_dict(self) -> dict[str, object]:
        return {
            "messages": self.messages,
            "records": self.records,
            "decode_failures": self.decode_failures,
            "storage_errors": self.storage_errors,
            "by_kind": dict(self.by_kind),
        }


class IngestPipeline:
    """Feeds bus messages through :func:`classify` into a :class:`RecordSink`.

    A storage failure on one record is logged and counted; the remaining
    records of the message are still persisted. Counter updates are
    guarded by a lock so a pipeline can be shared across bus threads.
    """

    def __init__(
        self,
        sink: RecordSink,
        *,
        max_payload_bytes: int | None = DEFAULT_MAX_PAYLOAD_BYTES,
    ) -> None:
        self._sink = sink
        self._max_payload_bytes = max_payload_bytes
        self._lock = threading.Lock()
        self.stats = PipelineStats()

    def handle_message(
        self,
        topic: str,
        payload: bytes | bytearray | memoryview,
        *,
        now: datetime | None = None,
    ) -> list[Record]:
        """Classify one message and persist its records in order."""
        records = classify(topic, payload, now=now, max_payload_bytes=self._max_payload_bytes)

        persisted: list[RecordKind] = []
        failures = 0
        for record in records:
            try:
                persist_record(self._sink, record)
            except StorageError as exc:
                failures += 1
                _LOGGER.warning(
                    "Failed to persist %s for device %s at %s (field=%s): %s",
                    exc.kind or record.kind,
                    exc.device_id or record.device_id,
                    record.timestamp.isoformat(),
                    exc.field,
                    exc,
                )
                continue
            persisted.append(record.kind)

        with self._lock:
            self.stats.messages += 1
            if not records:
                self.stats.decode_failures += 1
            self.stats.records += len(persisted)
            self.stats.storage_errors += failures
            self.stats.by_kind.update(str(kind) for kind in persisted)
        return records
