"""
In-memory multi-version ledger.

Models the host ledger's transaction semantics closely enough to run the
engine off-ledger and in tests:

- reads observe committed state only (no read-your-writes);
- each transaction records the version of every key it read;
- commit validates that read set and fails with ``TransactionConflictError``
  if a key changed underneath it, otherwise applies all writes at once;
- a key read as absent and since created fails with ``ConcurrentInsertError``,
  which is also an ``AlreadyExistsError`` (two concurrent issues for one
  holder); any other stale read is a plain conflict;
- events are published only on commit.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from ..config import COMPOSITE_KEY_DELIMITER
from ..exceptions import ConcurrentInsertError, TransactionConflictError, ValidationError
from .stub import create_composite_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerEvent:
    tx_id: str
    name: str
    payload: bytes


class InMemoryLedger:
    def __init__(self) -> None:
        self._state: Dict[str, Tuple[bytes, int]] = {}
        self._events: List[LedgerEvent] = []
        self._lock = threading.Lock()
        self._block = 0

    @property
    def events(self) -> List[LedgerEvent]:
        """Committed events in commit order."""
        with self._lock:
            return list(self._events)

    def begin(
        self, tx_id: Optional[str] = None, timestamp: Optional[datetime] = None
    ) -> "Transaction":
        """
        Start a transaction.

        The host, not the engine, assigns the id and timestamp; callers that
        replay a transaction pass both explicitly.
        """
        return Transaction(
            self,
            tx_id or uuid.uuid4().hex,
            timestamp or datetime.now(timezone.utc),
        )

    def committed_value(self, key: str) -> Optional[bytes]:
        with self._lock:
            entry = self._state.get(key)
        return entry[0] if entry else None

    def _read(self, key: str) -> Tuple[Optional[bytes], Optional[int]]:
        with self._lock:
            entry = self._state.get(key)
        if entry is None:
            return None, None
        return entry

    def _scan(self, prefix: str) -> List[Tuple[str, bytes, int]]:
        with self._lock:
            return [
                (key, value, version)
                for key, (value, version) in sorted(self._state.items())
                if key.startswith(prefix)
            ]

    def _commit(self, tx: "Transaction") -> None:
        with self._lock:
            for key, seen_version in tx._read_set.items():
                entry = self._state.get(key)
                current_version = entry[1] if entry else None
                if current_version == seen_version:
                    continue
                if seen_version is None:
                    raise ConcurrentInsertError(
                        f"Transaction {tx.tx_id} read a key as absent that a "
                        f"concurrent commit created"
                    )
                raise TransactionConflictError(
                    f"Transaction {tx.tx_id} read a stale value "
                    f"(key changed by a concurrent commit)"
                )

            self._block += 1
            for key, value in tx._write_set.items():
                self._state[key] = (value, self._block)
            for name, payload in tx._events:
                self._events.append(LedgerEvent(tx.tx_id, name, payload))

        logger.debug(
            "Committed tx %s: %d writes, %d events",
            tx.tx_id, len(tx._write_set), len(tx._events),
        )


class Transaction:
    """One transaction's view of an :class:`InMemoryLedger`."""

    def __init__(self, ledger: InMemoryLedger, tx_id: str, timestamp: datetime) -> None:
        self._ledger = ledger
        self._tx_id = tx_id
        self._timestamp = timestamp
        self._read_set: Dict[str, Optional[int]] = {}
        self._write_set: Dict[str, bytes] = {}
        self._events: List[Tuple[str, bytes]] = []
        self._status = "active"

    @property
    def tx_id(self) -> str:
        return self._tx_id

    @property
    def tx_timestamp(self) -> datetime:
        return self._timestamp

    @property
    def status(self) -> str:
        return self._status

    def get_state(self, key: str) -> Optional[bytes]:
        self._ensure_active()
        value, version = self._ledger._read(key)
        self._read_set.setdefault(key, version)
        return value

    def put_state(self, key: str, value: bytes) -> None:
        self._ensure_active()
        if not isinstance(key, str) or key == "":
            raise ValidationError("key must be a non-empty string")
        if not isinstance(value, (bytes, bytearray)):
            raise ValidationError("value must be bytes")
        self._write_set[key] = bytes(value)

    def create_composite_key(self, namespace: str, parts: Sequence[str]) -> str:
        return create_composite_key(namespace, parts)

    def get_state_by_partial_composite_key(
        self, namespace: str, parts: Sequence[str]
    ) -> Iterator[Tuple[str, bytes]]:
        self._ensure_active()
        prefix = COMPOSITE_KEY_DELIMITER + namespace + COMPOSITE_KEY_DELIMITER
        for part in parts:
            prefix += part + COMPOSITE_KEY_DELIMITER
        for key, value, version in self._ledger._scan(prefix):
            self._read_set.setdefault(key, version)
            yield key, value

    def set_event(self, name: str, payload: bytes) -> None:
        self._ensure_active()
        self._events.append((name, bytes(payload)))

    def commit(self) -> None:
        self._ensure_active()
        try:
            self._ledger._commit(self)
        except TransactionConflictError:
            self._status = "aborted"
            raise
        self._status = "committed"

    def abort(self) -> None:
        self._ensure_active()
        self._status = "aborted"
        logger.debug("Aborted tx %s: %d writes discarded", self._tx_id, len(self._write_set))

    def _ensure_active(self) -> None:
        if self._status != "active":
            raise RuntimeError(f"Transaction {self._tx_id} is {self._status}")

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._status != "active":
            return
        if exc_type is None:
            self.commit()
        else:
            self.abort()
