"""
Engine configuration for credential anchoring.

Values here affect ledger state, so every replica executing the same
transaction must run with the same configuration.
"""

# ============================================================================
# FIELD PARAMETERS
# ============================================================================

# BN254 scalar field (the field circom/snarkjs circuits operate over)
FIELD_NAME = "bn254"
FIELD_MODULUS = (
    21888242871839275222246405745257275088548364400416034343698204186575808495617
)
FIELD_MODULUS_BITS = 254

# Non-numeric attribute values keep at most this many bytes (stays below the modulus)
MAX_ENCODED_BYTES = 31

# Fixed byte representation for text attributes
TEXT_ENCODING = "utf-8"

# ============================================================================
# HASHING
# ============================================================================

DEFAULT_HASHER = "sha256"

# Domain separators for the default SHA-256 field hasher
DOMAIN_SEPARATOR_PREFIX = b"CREDENTIAL_ANCHOR_V1_"

DOMAIN_SEPARATORS = {
    "merkle_leaf": DOMAIN_SEPARATOR_PREFIX + b"MERKLE_LEAF",
    "merkle_node": DOMAIN_SEPARATOR_PREFIX + b"MERKLE_NODE",
}

# ============================================================================
# LEDGER LAYOUT
# ============================================================================

CREDENTIAL_NAMESPACE = "credential"
VERIFICATION_NAMESPACE = "verification"
AGE_VERIFICATION_NAMESPACE = "ageVerification"

# Composite key delimiter (namespace and parts are each terminated by it)
COMPOSITE_KEY_DELIMITER = "\x00"

EVENT_ISSUE = "IssueCredential"
EVENT_REVOKE = "RevokeCredential"
EVENT_VERIFY_PROOF = "VerifyProof"
EVENT_VERIFY_AGE = "VerifyAge"

DEFAULT_ISSUER = "unknown"

# ============================================================================
# VERIFICATION
# ============================================================================

DEFAULT_MINIMUM_AGE = 18
PROOF_PROTOCOL = "groth16"
SUPPORTED_CURVES = ("bn128", "bn254")

SIGNAL_CONVENTIONS = ("is_adult_v1", "age_binding_v2")
DEFAULT_SIGNAL_CONVENTION = "age_binding_v2"

VK_PATH_ENV_VAR = "CREDENTIAL_ANCHOR_VK_PATH"
SNARKJS_BIN_ENV_VAR = "CREDENTIAL_ANCHOR_SNARKJS_BIN"
DEFAULT_SNARKJS_BIN = "snarkjs"
SNARKJS_TIMEOUT_SEC = 60

MAX_VK_BYTES = 1024 * 1024

# ============================================================================
# VALIDATION
# ============================================================================


def validate_config() -> bool:
    """
    Validate configuration parameters.

    Returns:
        True if configuration is valid

    Raises:
        AssertionError: If configuration is invalid
    """
    assert FIELD_MODULUS.bit_length() == FIELD_MODULUS_BITS, "Modulus size mismatch"
    assert MAX_ENCODED_BYTES * 8 < FIELD_MODULUS_BITS, "Encoded bytes exceed field"
    assert DEFAULT_SIGNAL_CONVENTION in SIGNAL_CONVENTIONS, "Invalid signal convention"
    assert len(set(DOMAIN_SEPARATORS.values())) == len(DOMAIN_SEPARATORS), (
        "Domain separators must be distinct"
    )
    assert len({CREDENTIAL_NAMESPACE, VERIFICATION_NAMESPACE,
                AGE_VERIFICATION_NAMESPACE}) == 3, "Namespaces must be distinct"
    return True


# Auto-validate on import
validate_config()
