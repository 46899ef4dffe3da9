"""
Append-only audit log of verification attempts.

Records carry public signals and hashes only; raw attribute values never
reach the ledger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import AGE_VERIFICATION_NAMESPACE, VERIFICATION_NAMESPACE
from .exceptions import AlreadyExistsError, ValidationError
from .ledger.codec import decode_record, encode_record
from .ledger.stub import LedgerStub

logger = logging.getLogger(__name__)

KIND_NAMESPACES = {
    "proof": VERIFICATION_NAMESPACE,
    "age": AGE_VERIFICATION_NAMESPACE,
}


@dataclass(frozen=True)
class VerificationRecord:
    holder_id: str
    transaction_id: str
    timestamp: str
    accepted: bool
    kind: str
    public_signals: List[Any] = field(default_factory=list)
    minimum_age: Optional[int] = None
    bound_root_hash: Optional[str] = None
    is_of_age: Optional[bool] = None
    reason: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "holderId": self.holder_id,
            "transactionId": self.transaction_id,
            "timestamp": self.timestamp,
            "accepted": self.accepted,
            "kind": self.kind,
            "publicSignals": list(self.public_signals),
        }
        if self.minimum_age is not None:
            data["minimumAge"] = self.minimum_age
        if self.bound_root_hash is not None:
            data["boundRootHash"] = self.bound_root_hash
        if self.is_of_age is not None:
            data["isOfAge"] = self.is_of_age
        if self.reason is not None:
            data["reason"] = dict(self.reason)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VerificationRecord":
        try:
            return cls(
                holder_id=data["holderId"],
                transaction_id=data["transactionId"],
                timestamp=data["timestamp"],
                accepted=bool(data["accepted"]),
                kind=data["kind"],
                public_signals=list(data.get("publicSignals", [])),
                minimum_age=data.get("minimumAge"),
                bound_root_hash=data.get("boundRootHash"),
                is_of_age=data.get("isOfAge"),
                reason=data.get("reason"),
            )
        except KeyError as e:
            raise ValidationError(f"Invalid verification record: missing {e}") from e


def _namespaces(kind: str) -> List[str]:
    if kind == "all":
        return [VERIFICATION_NAMESPACE, AGE_VERIFICATION_NAMESPACE]
    if kind not in KIND_NAMESPACES:
        raise ValidationError(
            f"Invalid verification kind: {kind!r}. Valid options: proof, age, all"
        )
    return [KIND_NAMESPACES[kind]]


class AuditLog:
    """Verification records keyed by ``(namespace, [holderId, transactionId])``."""

    def __init__(self, stub: LedgerStub) -> None:
        self._stub = stub

    def append(self, record: VerificationRecord) -> str:
        """
        Write a record. Records are never overwritten.

        Raises:
            AlreadyExistsError: If the transaction already recorded an attempt
        """
        namespace = _namespaces(record.kind)[0]
        key = self._stub.create_composite_key(
            namespace, [record.holder_id, record.transaction_id]
        )
        if self._stub.get_state(key):
            raise AlreadyExistsError(
                f"Verification record for tx {record.transaction_id} already exists"
            )
        self._stub.put_state(key, encode_record(record.to_dict()))
        logger.debug(
            "Recorded %s verification for %s (accepted=%s)",
            record.kind, record.holder_id, record.accepted,
        )
        return key

    def query_all(self, kind: str = "proof") -> List[VerificationRecord]:
        """Every record of ``kind`` in ledger iteration order (not chronological)."""
        return self._query(kind, [])

    def query_holder(self, holder_id: str, kind: str = "proof") -> List[VerificationRecord]:
        if not isinstance(holder_id, str) or not holder_id:
            raise ValidationError("holderId is required")
        return self._query(kind, [holder_id])

    def _query(self, kind: str, parts: List[str]) -> List[VerificationRecord]:
        records = []
        for namespace in _namespaces(kind):
            for _key, value in self._stub.get_state_by_partial_composite_key(
                namespace, parts
            ):
                if value:
                    records.append(VerificationRecord.from_dict(decode_record(value)))
        return records
