"""External zero-knowledge verification boundary."""

from .proof import Groth16Proof
from .verifier import ZKVerifier, clear_key_cache, load_verification_key

__all__ = [
    "Groth16Proof",
    "ZKVerifier",
    "clear_key_cache",
    "load_verification_key",
]
