"""Custom exception hierarchy for iotingest."""

from __future__ import annotations

from datetime import datetime


class IngestError(Exception):
    """Base exception for all iotingest errors."""


class IngestConfigError(IngestError):
    """Invalid or missing configuration."""


class PayloadDecodeError(IngestError):
    """Payload bytes could not be decoded as UTF-8 text.

    Raised by the decoder only. :func:`iotingest.ingestion.classify.classify`
    catches it, logs it and returns an empty record list.
    """

    def __init__(self, message: str, *, topic: str = "", size: int = 0) -> None:
        self.topic = topic
        self.size = size
        super().__init__(message)


class PayloadTooLargeError(PayloadDecodeError):
    """Payload exceeded the configured ``max_payload_bytes`` bound."""


class StorageError(IngestError):
    """A record could not be persisted.

    Carries enough context to diagnose the failing insert: the record
    kind, device id, timestamp and, when known, the offending field.
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str = "",
        device_id: str = "",
        timestamp: datetime | None = None,
        field: str | None = None,
    ) -> None:
        self.kind = kind
        self.device_id = device_id
        self.timestamp = timestamp
        self.field = field
        super().__init__(message)


class BusError(IngestError):
    """Messaging bus connection or subscription failure."""
