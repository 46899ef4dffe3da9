"""
Public-signal parsing and normalization.

Public signals arrive as untyped JSON from the prover. They are converted
into integers and booleans here, before any business rule looks at them.
A literal that is not a recognised form is an error, never a silent false.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence

from .encoding import parse_field_element
from .exceptions import MalformedPayloadError, SignalMismatchError, ValidationError

_TRUE_LITERALS = frozenset({"1", "true"})
_FALSE_LITERALS = frozenset({"0", "false"})


class SignalConvention(Enum):
    """
    Versioned layouts of the age circuit's public signals.

    - IS_ADULT_V1: ``[isAdult]``; the root is supplied by the caller
    - AGE_BINDING_V2: ``[minimumAge, credentialHash, isOfAgeFlag]``
    """

    IS_ADULT_V1 = "is_adult_v1"
    AGE_BINDING_V2 = "age_binding_v2"

    @property
    def signal_count(self) -> int:
        return 1 if self is SignalConvention.IS_ADULT_V1 else 3


@dataclass(frozen=True)
class AgeSignals:
    convention: SignalConvention
    is_of_age: bool
    minimum_age: Optional[int] = None
    credential_hash: Optional[int] = None


def parse_public_signals(raw: Any) -> List[Any]:
    """
    Parse public signals given as a JSON string or a list.

    Raises:
        MalformedPayloadError: If missing, not a list, empty, or holding
            anything but strings, integers and booleans
    """
    if raw is None or raw == "":
        raise MalformedPayloadError("publicSignals is required")

    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise MalformedPayloadError("Invalid JSON for public signals") from exc

    if not isinstance(raw, (list, tuple)):
        raise MalformedPayloadError("publicSignals must be a list")
    if not raw:
        raise MalformedPayloadError("Public signals empty")

    for i, value in enumerate(raw):
        if not isinstance(value, (str, int)):
            raise MalformedPayloadError(
                f"publicSignals[{i}] must be a string, integer or boolean"
            )
    return list(raw)


def signals_for_verifier(signals: Sequence[Any]) -> List[str]:
    """Render signals as the decimal strings the external verifier expects."""
    rendered = []
    for value in signals:
        if isinstance(value, bool):
            rendered.append("1" if value else "0")
        else:
            rendered.append(str(value))
    return rendered


def to_flag(value: Any, check: str) -> bool:
    """
    Normalize ``1``/``0``, ``"1"``/``"0"``, ``true``/``false`` and their
    (case-insensitive) string forms to a bool.

    Raises:
        SignalMismatchError: For any other literal
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in (0, 1):
            return value == 1
    elif isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_LITERALS:
            return True
        if text in _FALSE_LITERALS:
            return False
    raise SignalMismatchError(check, f"unrecognized flag literal {value!r}")


def to_integer(value: Any, check: str) -> int:
    """
    Raises:
        SignalMismatchError: If the value is not a non-negative integer literal
    """
    try:
        return parse_field_element(value, check)
    except ValidationError as exc:
        raise SignalMismatchError(check, f"not an integer: {value!r}") from exc


def interpret_age_signals(
    signals: Sequence[Any],
    convention: SignalConvention,
    minimum_age: int,
) -> AgeSignals:
    """
    Apply the age predicate rules of ``convention`` to ``signals``.

    Raises:
        SignalMismatchError: Naming the failed sub-check (signal_count,
            is_adult, minimum_age, credential_hash or is_of_age)
    """
    if len(signals) != convention.signal_count:
        raise SignalMismatchError(
            "signal_count",
            f"{convention.value} expects {convention.signal_count} public "
            f"signals, got {len(signals)}",
        )

    if convention is SignalConvention.IS_ADULT_V1:
        if not to_flag(signals[0], "is_adult"):
            raise SignalMismatchError(
                "is_adult", "proof indicates the holder is NOT an adult"
            )
        return AgeSignals(convention=convention, is_of_age=True)

    signal_age = to_integer(signals[0], "minimum_age")
    if signal_age != minimum_age:
        raise SignalMismatchError(
            "minimum_age",
            f"proof was generated for minimum age {signal_age}, "
            f"verifier requires {minimum_age}",
        )
    credential_hash = to_integer(signals[1], "credential_hash")
    if not to_flag(signals[2], "is_of_age"):
        raise SignalMismatchError("is_of_age", "proof indicates the holder is under age")

    return AgeSignals(
        convention=convention,
        is_of_age=True,
        minimum_age=signal_age,
        credential_hash=credential_hash,
    )
