"""Payload decoding and format routing.

The decoder turns raw bus bytes into text (or rejects them) and the
router decides whether that text continues down the JSON path or the
plain-text path. Neither step is allowed to let an exception escape into
the ingestion loop; decode problems surface as :class:`PayloadDecodeError`
which the engine entry point converts into an empty result.
"""

from __future__ import annotations

import json
from typing import Any

from iotingest._constants import DEFAULT_MAX_PAYLOAD_BYTES
from iotingest.exceptions import PayloadDecodeError, PayloadTooLargeError
from iotingest.ingestion.normalize import MISSING


def decode_payload(
    payload: bytes | bytearray | memoryview,
    *,
    topic: str = "",
    max_payload_bytes: int | None = DEFAULT_MAX_PAYLOAD_BYTES,
) -> str:
    """Decode *payload* as strict UTF-8.

    Raises
    ------
    PayloadTooLargeError
        When *payload* is longer than *max_payload_bytes*. The size check
        runs before any decoding work. ``None`` disables it.
    PayloadDecodeError
        When *payload* is not valid UTF-8.
    """
    data = bytes(payload)
    size = len(data)
    if max_payload_bytes is not None and size > max_payload_bytes:
        raise PayloadTooLargeError(
            f"Payload of {size} bytes exceeds limit of {max_payload_bytes} bytes",
            topic=topic,
            size=size,
        )
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise PayloadDecodeError(
            f"Failed to decode payload as UTF-8: {exc.reason} at byte {exc.start}",
            topic=topic,
            size=size,
        ) from exc


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant {name!r}")


def parse_json(text: str) -> Any:
    """Parse *text* as a strict JSON document.

    Returns :data:`~iotingest.ingestion.normalize.MISSING` when the text is
    not JSON, so that a literal ``null`` document stays distinguishable
    from a routing miss. ``NaN``/``Infinity`` and documents nested beyond
    the parser's recursion limit count as "not JSON".
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return MISSING
