"""
Public operations of the engine and the name -> handler dispatch table.

``IdentityHandler`` is stateless apart from injected configuration (the ZK
verifier, the verification key and the field hasher); every call receives
the ledger view of the transaction it runs in.
"""

from __future__ import annotations

import inspect
import json
import logging
from datetime import datetime
from typing import Any, Dict, Final, List, Mapping, Optional, Sequence

from .audit import AuditLog
from .exceptions import (
    CredentialAnchorError,
    MalformedProofError,
    TransactionConflictError,
    UnknownOperationError,
    ValidationError,
)
from .factory import get_zk_verifier
from .hashing import FieldHasher
from .ledger.memory import InMemoryLedger
from .ledger.stub import LedgerStub
from .orchestrator import KeySource, ProofBindingOrchestrator
from .store import CredentialStore
from .zk.verifier import ZKVerifier, load_verification_key

logger = logging.getLogger(__name__)

OPERATIONS: Final[dict[str, str]] = {
    "IssueCredential": "issue_credential",
    "GetCredential": "get_credential",
    "RevokeCredential": "revoke_credential",
    "VerifyProof": "verify_proof",
    "VerifyAge": "verify_age",
    "QueryVerifications": "query_verifications",
}


def _parse_disclosure(value: Any) -> Optional[Mapping[str, Any]]:
    if value is None or value == "":
        return None
    if isinstance(value, (str, bytes, bytearray)):
        try:
            value = json.loads(value)
        except ValueError as exc:
            raise MalformedProofError("Invalid JSON for Merkle proof") from exc
    if not isinstance(value, Mapping):
        raise MalformedProofError("Merkle proof must be a JSON object")
    return value


class IdentityHandler:
    def __init__(
        self,
        verifier: Optional[ZKVerifier] = None,
        verification_key: Optional[KeySource] = None,
        hasher: Optional[FieldHasher] = None,
        signal_convention: Optional[str] = None,
    ) -> None:
        self._verifier = verifier if verifier is not None else get_zk_verifier()
        # Without an injected key, load from $CREDENTIAL_ANCHOR_VK_PATH on first use
        self._verification_key = (
            verification_key if verification_key is not None else load_verification_key
        )
        self._hasher = hasher
        self._signal_convention = signal_convention

    def _orchestrator(self, stub: LedgerStub) -> ProofBindingOrchestrator:
        return ProofBindingOrchestrator(
            stub, self._verifier, self._verification_key, self._hasher
        )

    def issue_credential(
        self,
        stub: LedgerStub,
        holder_id: str,
        credential_hash: Any,
        issuer: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> Dict[str, Any]:
        return CredentialStore(stub).issue(holder_id, credential_hash, issuer, timestamp).to_dict()

    def get_credential(self, stub: LedgerStub, holder_id: str) -> Dict[str, Any]:
        return CredentialStore(stub).get(holder_id).to_dict()

    def revoke_credential(
        self, stub: LedgerStub, holder_id: str, reason: Optional[str] = None
    ) -> Dict[str, Any]:
        return CredentialStore(stub).revoke(holder_id, reason).to_dict()

    def verify_proof(
        self,
        stub: LedgerStub,
        holder_id: str,
        proof: Any,
        public_signals: Any,
        root_hash: Any = None,
    ) -> Dict[str, Any]:
        outcome = self._orchestrator(stub).verify_proof(
            holder_id, proof, public_signals, root_hash
        )
        return outcome.to_dict()

    def verify_age(
        self,
        stub: LedgerStub,
        holder_id: str,
        minimum_age: Any,
        proof: Any,
        public_signals: Any,
        root_hash: Any = None,
        merkle_proof: Any = None,
    ) -> Dict[str, Any]:
        outcome = self._orchestrator(stub).verify_age(
            holder_id,
            proof,
            public_signals,
            minimum_age=minimum_age,
            root_hash=root_hash,
            merkle_proof=_parse_disclosure(merkle_proof),
            convention=self._signal_convention,
        )
        return outcome.to_dict()

    def query_verifications(
        self, stub: LedgerStub, kind: str = "proof"
    ) -> List[Dict[str, Any]]:
        return [record.to_dict() for record in AuditLog(stub).query_all(kind)]


def dispatch(
    handler: IdentityHandler, stub: LedgerStub, function: str, args: Sequence[Any]
) -> Any:
    """
    Invoke the operation registered under ``function``.

    Raises:
        UnknownOperationError: If the name is not in OPERATIONS
        ValidationError: If the argument count does not fit the operation
    """
    method_name = OPERATIONS.get(function)
    if method_name is None:
        raise UnknownOperationError(
            f"Unknown operation {function!r}. Valid options: "
            f"{', '.join(OPERATIONS)}"
        )

    method = getattr(handler, method_name)
    try:
        inspect.signature(method).bind(stub, *args)
    except TypeError as exc:
        raise ValidationError(f"{function}: {exc}") from exc

    logger.debug("Dispatching %s in tx %s", function, stub.tx_id)
    return method(stub, *args)


def submit(
    ledger: InMemoryLedger,
    handler: IdentityHandler,
    function: str,
    *args: Any,
    tx_id: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> Any:
    """
    Run one operation as its own transaction.

    Success commits every write. A rejected verification commits only its
    audit record (the sole write it made); any other failure discards the
    transaction. The original error is always re-raised.
    """
    tx = ledger.begin(tx_id=tx_id, timestamp=timestamp)
    try:
        result = dispatch(handler, tx, function, args)
    except CredentialAnchorError as exc:
        if getattr(exc, "audit_record", None) is not None:
            try:
                tx.commit()
            except TransactionConflictError:
                logger.warning("Rejection record for tx %s lost to a conflict", tx.tx_id)
        else:
            tx.abort()
        raise
    except Exception:
        tx.abort()
        raise

    tx.commit()
    return result
