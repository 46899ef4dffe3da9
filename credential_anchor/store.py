"""
Credential lifecycle on the ledger: write-once issuance and one-way revocation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .config import (
    CREDENTIAL_NAMESPACE,
    DEFAULT_ISSUER,
    EVENT_ISSUE,
    EVENT_REVOKE,
    FIELD_MODULUS,
)
from .encoding import parse_field_element
from .exceptions import (
    AlreadyExistsError,
    NotFoundError,
    RevokedCredentialError,
    ValidationError,
)
from .ledger.codec import decode_record, encode_record
from .ledger.stub import LedgerStub, format_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """
    Issued credential as stored on the ledger.

    Only the Merkle root of the holder's attributes is stored, never the
    attribute values themselves.
    """

    holder_id: str
    credential_hash: str
    issuer: str
    issued_at: str
    valid: bool = True
    revoked_at: Optional[str] = None
    revocation_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "holderId": self.holder_id,
            "credentialHash": self.credential_hash,
            "issuer": self.issuer,
            "issuedAt": self.issued_at,
            "valid": self.valid,
        }
        if self.revoked_at is not None:
            data["revokedAt"] = self.revoked_at
        if self.revocation_reason is not None:
            data["revocationReason"] = self.revocation_reason
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credential":
        try:
            return cls(
                holder_id=data["holderId"],
                credential_hash=data["credentialHash"],
                issuer=data["issuer"],
                issued_at=data["issuedAt"],
                valid=bool(data["valid"]),
                revoked_at=data.get("revokedAt"),
                revocation_reason=data.get("revocationReason"),
            )
        except KeyError as e:
            raise ValidationError(f"Invalid credential record: missing {e}") from e


def _require_holder(holder_id: Any) -> str:
    if not isinstance(holder_id, str) or not holder_id:
        raise ValidationError("holderId is required")
    return holder_id


class CredentialStore:
    """Credential entities keyed by ``("credential", [holderId])``."""

    def __init__(self, stub: LedgerStub) -> None:
        self._stub = stub

    def _key(self, holder_id: str) -> str:
        return self._stub.create_composite_key(CREDENTIAL_NAMESPACE, [holder_id])

    def exists(self, holder_id: str) -> bool:
        value = self._stub.get_state(self._key(_require_holder(holder_id)))
        return bool(value)

    def issue(
        self,
        holder_id: str,
        credential_hash: Any,
        issuer: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> Credential:
        """
        Store a new credential.

        Args:
            holder_id: Holder identity
            credential_hash: Merkle root, decimal or 0x-hex
            issuer: Issuing authority (defaults to "unknown")
            timestamp: Issuance time; the transaction timestamp when omitted

        Raises:
            ValidationError: If holder id or hash is missing or malformed,
                or the hash is not below the field modulus
            AlreadyExistsError: If the holder already has a credential
        """
        holder_id = _require_holder(holder_id)
        if credential_hash is None or credential_hash == "":
            raise ValidationError("credentialHash is required")
        root = parse_field_element(credential_hash, "credentialHash")
        if root >= FIELD_MODULUS:
            raise ValidationError("credentialHash is outside the field")
        canonical_hash = str(root)

        key = self._key(holder_id)
        if self._stub.get_state(key):
            raise AlreadyExistsError(f"Credential for holder {holder_id} already exists")

        credential = Credential(
            holder_id=holder_id,
            credential_hash=canonical_hash,
            issuer=issuer or DEFAULT_ISSUER,
            issued_at=timestamp or format_timestamp(self._stub.tx_timestamp),
        )
        self._stub.put_state(key, encode_record(credential.to_dict()))
        self._stub.set_event(
            EVENT_ISSUE,
            encode_record({"holderId": holder_id, "credentialHash": canonical_hash}),
        )
        logger.info("Issued credential for %s by %s", holder_id, credential.issuer)
        return credential

    def get(self, holder_id: str) -> Credential:
        """
        Raises:
            NotFoundError: If the holder has no credential
        """
        holder_id = _require_holder(holder_id)
        value = self._stub.get_state(self._key(holder_id))
        if not value:
            raise NotFoundError(f"No credential found for holder {holder_id}")
        return Credential.from_dict(decode_record(value))

    def revoke(self, holder_id: str, reason: Optional[str] = None) -> Credential:
        """
        Mark a credential unusable for future verification.

        Raises:
            NotFoundError: If the holder has no credential
            RevokedCredentialError: If it was already revoked
        """
        current = self.get(holder_id)
        if not current.valid:
            raise RevokedCredentialError(
                f"Credential for holder {holder_id} was already revoked "
                f"at {current.revoked_at}"
            )

        revoked = Credential(
            holder_id=current.holder_id,
            credential_hash=current.credential_hash,
            issuer=current.issuer,
            issued_at=current.issued_at,
            valid=False,
            revoked_at=format_timestamp(self._stub.tx_timestamp),
            revocation_reason=reason or None,
        )
        self._stub.put_state(self._key(holder_id), encode_record(revoked.to_dict()))
        self._stub.set_event(EVENT_REVOKE, encode_record({"holderId": holder_id}))
        logger.info("Revoked credential for %s", holder_id)
        return revoked
