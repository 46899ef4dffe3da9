"""Host ledger interface seen by the engine during one transaction."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterator, Protocol, Sequence, Tuple, runtime_checkable

from ..config import COMPOSITE_KEY_DELIMITER
from ..exceptions import ValidationError


@runtime_checkable
class LedgerStub(Protocol):
    """
    Per-transaction view of the host ledger.

    Writes become visible to other transactions only when the host commits;
    a failed invocation discards them together.
    """

    @property
    def tx_id(self) -> str:
        ...

    @property
    def tx_timestamp(self) -> datetime:
        ...

    def get_state(self, key: str) -> bytes | None:
        ...

    def put_state(self, key: str, value: bytes) -> None:
        ...

    def create_composite_key(self, namespace: str, parts: Sequence[str]) -> str:
        ...

    def get_state_by_partial_composite_key(
        self, namespace: str, parts: Sequence[str]
    ) -> Iterator[Tuple[str, bytes]]:
        ...

    def set_event(self, name: str, payload: bytes) -> None:
        ...


def create_composite_key(namespace: str, parts: Sequence[str]) -> str:
    """
    Build a composite key as ``\\x00ns\\x00part1\\x00part2\\x00``.

    Raises:
        ValidationError: If a component is empty or contains the delimiter
    """
    _check_component(namespace, "namespace")
    key = COMPOSITE_KEY_DELIMITER + namespace + COMPOSITE_KEY_DELIMITER
    for part in parts:
        _check_component(part, "key part")
        key += part + COMPOSITE_KEY_DELIMITER
    return key


def split_composite_key(key: str) -> Tuple[str, list[str]]:
    """Inverse of :func:`create_composite_key`."""
    components = key.split(COMPOSITE_KEY_DELIMITER)
    if len(components) < 3 or components[0] != "" or components[-1] != "":
        raise ValidationError(f"Not a composite key: {key!r}")
    return components[1], components[2:-1]


def _check_component(value: str, label: str) -> None:
    if not isinstance(value, str) or value == "":
        raise ValidationError(f"{label} must be a non-empty string")
    if COMPOSITE_KEY_DELIMITER in value:
        raise ValidationError(f"{label} must not contain the key delimiter")


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )
