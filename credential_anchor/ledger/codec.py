"""CBOR encoding of ledger values and event payloads."""

from __future__ import annotations

from typing import Any, Dict

import cbor2

from ..exceptions import ValidationError


def encode_record(record: Dict[str, Any]) -> bytes:
    """
    Serialize a ledger value.

    Canonical CBOR sorts map keys, so every replica writes identical bytes
    for the same record.

    Raises:
        ValidationError: If the record contains unserializable values
    """
    try:
        return cbor2.dumps(record, canonical=True)
    except Exception as e:
        raise ValidationError(f"Failed to serialize record: {e}") from e


def decode_record(data: bytes) -> Dict[str, Any]:
    """
    Deserialize a ledger value.

    Raises:
        ValidationError: If the bytes are not a CBOR map
    """
    try:
        obj = cbor2.loads(data)
    except Exception as e:
        raise ValidationError(f"Failed to deserialize record: {e}") from e

    if not isinstance(obj, dict):
        raise ValidationError("Invalid record format: expected a map")
    return obj
