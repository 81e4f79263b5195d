"""Ingestion layer.

This package turns raw ``(topic, payload)`` pairs received from the bus
into typed records: decoding, format routing, field extraction and the
record classifiers.
"""

__all__: list[str] = []
