"""Public API for credential_anchor."""
from __future__ import annotations

from importlib import import_module

__version__ = "0.1.0"

from .encoding import encode, parse_field_element
from .exceptions import CredentialAnchorError
from .merkle import (
    CredentialRoot,
    MerkleProof,
    MerkleTree,
    build_tree,
    compute_credential_root,
    compute_leaf_hash,
    generate_proof,
    root_of,
    verify_proof,
)

__all__ = [
    "__version__",
    "encode",
    "parse_field_element",
    "CredentialAnchorError",
    "CredentialRoot",
    "MerkleProof",
    "MerkleTree",
    "build_tree",
    "compute_credential_root",
    "compute_leaf_hash",
    "generate_proof",
    "root_of",
    "verify_proof",
    "IdentityHandler",
    "InMemoryLedger",
    "submit",
]

_LAZY_EXPORTS = {
    "IdentityHandler": "contract",
    "submit": "contract",
    "InMemoryLedger": "ledger.memory",
}


def __getattr__(name: str):
    if name in _LAZY_EXPORTS:
        module = import_module(f"{__name__}.{_LAZY_EXPORTS[name]}")
        value = getattr(module, name)
        globals()[name] = value
        return value
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
