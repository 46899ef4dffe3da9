"""
Custom exceptions for the credential anchoring engine.

Every failure mode raised by the engine has its own type so callers (and
tests) can tell rejections apart by kind rather than by message. All of them
are fatal to the current invocation only.
"""


class CredentialAnchorError(Exception):
    """Base exception for credential anchoring errors."""

    #: Stable machine-readable kind, recorded in the audit log on rejection.
    kind = "error"


class ConfigurationError(CredentialAnchorError):
    """Configuration error."""

    kind = "configuration"


class ValidationError(CredentialAnchorError):
    """Missing or malformed arguments."""

    kind = "validation"


class MalformedPayloadError(ValidationError):
    """Proof or public signals could not be parsed."""

    kind = "malformed_payload"


class MissingFieldError(ValidationError):
    """A field named in the field order is absent from the attributes."""

    kind = "missing_field"

    def __init__(self, field_name: str) -> None:
        super().__init__(f'Field "{field_name}" not found in credential fields')
        self.field_name = field_name


class EncodingError(CredentialAnchorError):
    """Value cannot be converted to a field element."""

    kind = "encoding"


class EmptyInputError(CredentialAnchorError):
    """Merkle tree requested over zero leaves."""

    kind = "empty_input"


class IndexOutOfRangeError(CredentialAnchorError):
    """Leaf index outside the tree."""

    kind = "index_out_of_range"


class MalformedProofError(CredentialAnchorError):
    """Merkle proof structure is inconsistent."""

    kind = "malformed_proof"


class AlreadyExistsError(CredentialAnchorError):
    """A credential already exists for the holder."""

    kind = "already_exists"


class TransactionConflictError(CredentialAnchorError):
    """A key in the read set was changed by a concurrently committed transaction."""

    kind = "transaction_conflict"


class ConcurrentInsertError(TransactionConflictError, AlreadyExistsError):
    """A key read as absent was created by a concurrently committed transaction."""

    kind = "already_exists"


class NotFoundError(CredentialAnchorError):
    """No credential exists for the holder."""

    kind = "not_found"


class RevokedCredentialError(CredentialAnchorError):
    """The credential has been revoked."""

    kind = "revoked"


class ProofInvalidError(CredentialAnchorError):
    """The external zero-knowledge verifier rejected the proof."""

    kind = "proof_invalid"


class SignalMismatchError(CredentialAnchorError):
    """Public signals do not satisfy the business rule."""

    kind = "signal_mismatch"

    def __init__(self, check: str, message: str) -> None:
        super().__init__(f"{check}: {message}")
        self.check = check


class RootMismatchError(CredentialAnchorError):
    """Bound root hash differs from the credential stored on the ledger."""

    kind = "root_mismatch"


class KeyUnavailableError(CredentialAnchorError):
    """Verification key could not be loaded."""

    kind = "key_unavailable"


class UnknownOperationError(CredentialAnchorError):
    """Dispatcher was asked for an operation that is not registered."""

    kind = "unknown_operation"
