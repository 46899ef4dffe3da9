"""
Field element encoding for credential attributes.

Every replica must derive the same leaf for the same attribute, so encoding
is a pure function of a fixed byte representation (UTF-8 for text).
"""

from __future__ import annotations

import re
from typing import Any

from .config import MAX_ENCODED_BYTES, TEXT_ENCODING
from .exceptions import EncodingError, ValidationError

_DECIMAL_RE = re.compile(r"[0-9]+")
_HEX_RE = re.compile(r"0[xX][0-9a-fA-F]+")


def encode(value: Any) -> int:
    """
    Convert an attribute value to a field element.

    Args:
        value: Non-negative int, str, bytes or bytearray

    Returns:
        Non-negative integer

    Raises:
        EncodingError: If the value has no byte representation

    Example:
        >>> encode("19900101")
        19900101
        >>> encode("AB")
        16706
    """
    if isinstance(value, bool):
        raise EncodingError("Cannot convert value of type bool to field element")

    if isinstance(value, int):
        if value < 0:
            raise EncodingError("Negative integers are not field elements")
        return value

    if isinstance(value, str):
        # ASCII digits only; str.isdigit() also accepts other scripts
        if _DECIMAL_RE.fullmatch(value):
            return int(value)
        try:
            data = value.encode(TEXT_ENCODING)
        except UnicodeEncodeError as exc:
            raise EncodingError(f"Cannot encode text value: {exc}") from exc
        return _bytes_to_int(data)

    if isinstance(value, (bytes, bytearray)):
        return _bytes_to_int(bytes(value))

    raise EncodingError(
        f"Cannot convert value of type {type(value).__name__} to field element"
    )


def _bytes_to_int(data: bytes) -> int:
    return int.from_bytes(data[:MAX_ENCODED_BYTES], "big")


def parse_field_element(value: Any, label: str = "value") -> int:
    """
    Parse a field element given as int, decimal string or 0x-prefixed hex.

    Used wherever two representations of the same hash are compared, so
    "0x1f" and "31" are the same element.

    Raises:
        ValidationError: If the value is not a recognised representation
    """
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be an integer, got bool")

    if isinstance(value, int):
        if value < 0:
            raise ValidationError(f"{label} must be non-negative")
        return value

    if isinstance(value, str):
        text = value.strip()
        if _DECIMAL_RE.fullmatch(text):
            return int(text)
        if _HEX_RE.fullmatch(text):
            return int(text, 16)
        raise ValidationError(f"{label} is not a decimal or 0x-hex integer: {value!r}")

    raise ValidationError(
        f"{label} must be int or str, got {type(value).__name__}"
    )
