"""
Proof/binding orchestration: accept or reject one verification attempt.

Each attempt walks RECEIVED -> PROOF_CHECKED -> SIGNALS_VALIDATED ->
ROOT_BOUND -> ACCEPTED. A failure at any step moves it to REJECTED, writes a
rejection record to the audit log and re-raises the typed error. The
rejection record is the only write a rejected attempt makes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .audit import AuditLog, VerificationRecord
from .config import (
    COMPOSITE_KEY_DELIMITER,
    DEFAULT_MINIMUM_AGE,
    EVENT_VERIFY_AGE,
    EVENT_VERIFY_PROOF,
)
from .encoding import parse_field_element
from .exceptions import (
    CredentialAnchorError,
    MalformedPayloadError,
    MalformedProofError,
    ProofInvalidError,
    RevokedCredentialError,
    RootMismatchError,
    ValidationError,
)
from .feature_flags import get_signal_convention
from .hashing import FieldHasher
from .ledger.codec import encode_record
from .ledger.stub import LedgerStub, format_timestamp
from .merkle import MerkleProof, verify_proof as verify_merkle_proof
from .signals import (
    SignalConvention,
    interpret_age_signals,
    parse_public_signals,
    signals_for_verifier,
)
from .store import Credential, CredentialStore
from .zk.proof import Groth16Proof
from .zk.verifier import ZKVerifier

logger = logging.getLogger(__name__)

KeySource = Union[Mapping[str, Any], Callable[[], Mapping[str, Any]]]


class VerificationState(Enum):
    RECEIVED = "received"
    PROOF_CHECKED = "proof_checked"
    SIGNALS_VALIDATED = "signals_validated"
    ROOT_BOUND = "root_bound"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass
class _Attempt:
    holder_id: str
    kind: str
    transaction_id: str
    timestamp: str
    state: VerificationState = VerificationState.RECEIVED
    public_signals: List[Any] = field(default_factory=list)
    minimum_age: Optional[int] = None
    bound_root_hash: Optional[str] = None


@dataclass(frozen=True)
class VerificationOutcome:
    accepted: bool
    state: VerificationState
    record: VerificationRecord
    is_of_age: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "valid": self.accepted,
            "transactionId": self.record.transaction_id,
        }
        if self.is_of_age is not None:
            data["isOfAge"] = self.is_of_age
        if self.record.bound_root_hash is not None:
            data["boundRootHash"] = self.record.bound_root_hash
        return data


def _parse_minimum_age(value: Any) -> int:
    if value is None or value == "":
        return DEFAULT_MINIMUM_AGE
    try:
        return parse_field_element(value, "minimumAge")
    except ValidationError as exc:
        raise MalformedPayloadError(str(exc)) from exc


def _parse_root(value: Any, label: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return parse_field_element(value, label)
    except ValidationError as exc:
        raise MalformedPayloadError(str(exc)) from exc


class ProofBindingOrchestrator:
    """
    Combine external ZK verification, signal rules, the on-ledger root and
    revocation status into one accept/reject decision.

    Args:
        stub: Ledger view of the current transaction
        verifier: External ZK verifier
        verification_key: The key itself, or a zero-argument loader that
            returns it (e.g. ``load_verification_key``)
        hasher: Field hasher for Merkle path disclosures
    """

    def __init__(
        self,
        stub: LedgerStub,
        verifier: ZKVerifier,
        verification_key: KeySource,
        hasher: Optional[FieldHasher] = None,
    ) -> None:
        self._stub = stub
        self._verifier = verifier
        self._verification_key = verification_key
        self._hasher = hasher
        self._store = CredentialStore(stub)
        self._audit = AuditLog(stub)

    def verify_age(
        self,
        holder_id: str,
        proof: Any,
        public_signals: Any,
        minimum_age: Any = None,
        root_hash: Any = None,
        merkle_proof: Optional[Mapping[str, Any]] = None,
        convention: Optional[str] = None,
    ) -> VerificationOutcome:
        """
        Verify an age predicate proof bound to the holder's credential.

        Under ``is_adult_v1`` the root must be supplied in ``root_hash``;
        under ``age_binding_v2`` it is carried in the signals and
        ``root_hash``, when given, must agree with it.

        Raises:
            MalformedPayloadError, KeyUnavailableError, ProofInvalidError,
            SignalMismatchError, NotFoundError, RevokedCredentialError,
            RootMismatchError, MalformedProofError
        """
        attempt = self._start(holder_id, "age")
        try:
            attempt.minimum_age = _parse_minimum_age(minimum_age)
            groth16, signals = self._receive(attempt, proof, public_signals)
            self._check_proof(attempt, groth16, signals)

            selected = SignalConvention(get_signal_convention(convention))
            age = interpret_age_signals(signals, selected, attempt.minimum_age)
            attempt.state = VerificationState.SIGNALS_VALIDATED

            bound_root = self._select_root(age.credential_hash, root_hash)
            if bound_root is None:
                raise MalformedPayloadError(
                    f"rootHash is required for {selected.value} proofs"
                )
            self._bind(attempt, bound_root, merkle_proof)
        except CredentialAnchorError as exc:
            self._reject(attempt, exc)
            raise

        return self._accept(attempt, is_of_age=True)

    def verify_proof(
        self,
        holder_id: str,
        proof: Any,
        public_signals: Any,
        root_hash: Any = None,
    ) -> VerificationOutcome:
        """
        Verify a proof without interpreting its signals.

        The holder's credential must exist and be unrevoked; the root is
        compared only when ``root_hash`` is supplied.
        """
        attempt = self._start(holder_id, "proof")
        try:
            groth16, signals = self._receive(attempt, proof, public_signals)
            self._check_proof(attempt, groth16, signals)
            attempt.state = VerificationState.SIGNALS_VALIDATED
            self._bind(attempt, _parse_root(root_hash, "rootHash"), None)
        except CredentialAnchorError as exc:
            self._reject(attempt, exc)
            raise

        return self._accept(attempt)

    def _start(self, holder_id: Any, kind: str) -> _Attempt:
        if not isinstance(holder_id, str) or not holder_id:
            raise MalformedPayloadError("holderId is required")
        if COMPOSITE_KEY_DELIMITER in holder_id:
            raise MalformedPayloadError("holderId must not contain the key delimiter")
        return _Attempt(
            holder_id=holder_id,
            kind=kind,
            transaction_id=self._stub.tx_id,
            timestamp=format_timestamp(self._stub.tx_timestamp),
        )

    def _receive(self, attempt: _Attempt, proof: Any, public_signals: Any):
        groth16 = Groth16Proof.parse(proof)
        signals = parse_public_signals(public_signals)
        attempt.public_signals = signals
        return groth16, signals

    def _check_proof(
        self, attempt: _Attempt, proof: Groth16Proof, signals: List[Any]
    ) -> None:
        key = self._verification_key
        if callable(key):
            key = key()

        try:
            valid = self._verifier.verify(key, signals_for_verifier(signals), proof.to_dict())
        except Exception as exc:
            raise ProofInvalidError(f"ZK verifier failed: {exc}") from exc
        if not valid:
            raise ProofInvalidError("Proof verification failed")
        attempt.state = VerificationState.PROOF_CHECKED

    def _select_root(self, signal_root: Optional[int], root_hash: Any) -> Optional[int]:
        supplied = _parse_root(root_hash, "rootHash")
        if signal_root is not None and supplied is not None and signal_root != supplied:
            raise RootMismatchError("Proof-carried root differs from the supplied root")
        return signal_root if signal_root is not None else supplied

    def _bind(
        self,
        attempt: _Attempt,
        bound_root: Optional[int],
        merkle_proof: Optional[Mapping[str, Any]],
    ) -> Credential:
        credential = self._store.get(attempt.holder_id)
        if not credential.valid:
            raise RevokedCredentialError(
                f"Credential for holder {attempt.holder_id} has been revoked"
            )

        stored_root = parse_field_element(credential.credential_hash, "credentialHash")
        if bound_root is not None:
            attempt.bound_root_hash = str(bound_root)
            if bound_root != stored_root:
                raise RootMismatchError(
                    "Bound root hash does not match the issued credential"
                )

        if merkle_proof is not None:
            self._check_disclosure(merkle_proof, stored_root)

        attempt.state = VerificationState.ROOT_BOUND
        return credential

    def _check_disclosure(self, disclosure: Mapping[str, Any], stored_root: int) -> None:
        if not isinstance(disclosure, Mapping) or "leaf" not in disclosure:
            raise MalformedProofError("Merkle disclosure must include a leaf")
        path = MerkleProof.from_dict(disclosure)
        try:
            leaf = parse_field_element(disclosure["leaf"], "leaf")
        except ValidationError as exc:
            raise MalformedProofError(str(exc)) from exc
        if not verify_merkle_proof(leaf, path, stored_root, self._hasher):
            raise RootMismatchError(
                "Merkle path does not reproduce the issued credential root"
            )

    def _record(self, attempt: _Attempt, accepted: bool, **extra: Any) -> VerificationRecord:
        record = VerificationRecord(
            holder_id=attempt.holder_id,
            transaction_id=attempt.transaction_id,
            timestamp=attempt.timestamp,
            accepted=accepted,
            kind=attempt.kind,
            public_signals=list(attempt.public_signals),
            minimum_age=attempt.minimum_age,
            bound_root_hash=attempt.bound_root_hash,
            **extra,
        )
        self._audit.append(record)
        return record

    def _event_name(self, attempt: _Attempt) -> str:
        return EVENT_VERIFY_AGE if attempt.kind == "age" else EVENT_VERIFY_PROOF

    def _accept(self, attempt: _Attempt, is_of_age: Optional[bool] = None) -> VerificationOutcome:
        attempt.state = VerificationState.ACCEPTED
        record = self._record(attempt, True, is_of_age=is_of_age)
        payload: Dict[str, Any] = {
            "holderId": attempt.holder_id,
            "txId": attempt.transaction_id,
            "accepted": True,
        }
        if is_of_age is not None:
            payload["isOfAge"] = is_of_age
        self._stub.set_event(self._event_name(attempt), encode_record(payload))
        logger.info("Accepted %s verification for %s", attempt.kind, attempt.holder_id)
        return VerificationOutcome(
            accepted=True, state=attempt.state, record=record, is_of_age=is_of_age
        )

    def _reject(self, attempt: _Attempt, exc: CredentialAnchorError) -> None:
        failed_at = attempt.state
        attempt.state = VerificationState.REJECTED
        reason = {"kind": exc.kind, "message": str(exc), "state": failed_at.value}
        check = getattr(exc, "check", None)
        if check:
            reason["check"] = check
        record = self._record(attempt, False, reason=reason)
        self._stub.set_event(
            self._event_name(attempt),
            encode_record({
                "holderId": attempt.holder_id,
                "txId": attempt.transaction_id,
                "accepted": False,
                "reason": exc.kind,
            }),
        )
        # Lets the transaction runner commit the rejection record
        exc.audit_record = record
        logger.warning(
            "Rejected %s verification for %s after %s: %s",
            attempt.kind, attempt.holder_id, failed_at.value, exc.kind,
        )
