"""
Factories for the pluggable collaborators: field hashers and ZK verifiers.

Registries map short names to dotted import paths so optional backends are
only imported when selected.
"""

from __future__ import annotations

import importlib
import logging
import os
from typing import Final

from .config import DEFAULT_HASHER
from .exceptions import ConfigurationError
from .feature_flags import get_verifier_type
from .hashing import FieldHasher
from .zk.verifier import ZKVerifier

logger = logging.getLogger(__name__)

HASHER_REGISTRY: Final[dict[str, str]] = {
    "sha256": "credential_anchor.hashing.Sha256FieldHasher",
}

VERIFIER_REGISTRY: Final[dict[str, str]] = {
    "snarkjs": "credential_anchor.zk.snarkjs.SnarkjsVerifier",
    "static": "credential_anchor.zk.static.StaticVerifier",
}

_HASHER_ENV_VAR: Final[str] = "CREDENTIAL_ANCHOR_HASHER"


def _load_class(import_path: str, label: str) -> type:
    module_path, _, class_name = import_path.rpartition(".")
    if not module_path or not class_name:
        raise ConfigurationError(f"Invalid {label} import path: {import_path!r}")

    try:
        module = importlib.import_module(module_path)
    except ModuleNotFoundError as exc:
        raise ConfigurationError(
            f"Unable to import {label} module {module_path!r}"
        ) from exc

    try:
        cls = getattr(module, class_name)
    except AttributeError as exc:
        raise ConfigurationError(
            f"{label} class {class_name!r} not found in module {module_path!r}"
        ) from exc

    if not isinstance(cls, type):
        raise ConfigurationError(f"{label} reference {import_path!r} is not a class")

    return cls


def get_field_hasher(name: str | None = None) -> FieldHasher:
    """
    Return a field hasher instance.

    Args:
        name: Registry name or dotted import path of a FieldHasher class.
            Falls back to $CREDENTIAL_ANCHOR_HASHER, then to sha256.

    Raises:
        ConfigurationError: If the hasher cannot be loaded.
    """
    selected = name or os.getenv(_HASHER_ENV_VAR) or DEFAULT_HASHER
    import_path = HASHER_REGISTRY.get(selected, selected)
    if "." not in import_path:
        raise ConfigurationError(
            f"Unknown hasher {selected!r}. Valid options: "
            f"{', '.join(sorted(HASHER_REGISTRY))} or a dotted class path"
        )

    hasher = _load_class(import_path, "hasher")()
    if not isinstance(hasher, FieldHasher):
        raise ConfigurationError(f"{type(hasher).__name__!r} is not a FieldHasher")
    return hasher


def get_zk_verifier(
    *, prefer: str | None = None, override: str | None = None
) -> ZKVerifier:
    """
    Return a ZK verifier instance based on feature flags.

    Args:
        prefer: Optional verifier name hint.
        override: Optional verifier name override (testing only).

    Raises:
        ValueError: If a verifier name is invalid.
        ConfigurationError: If the verifier class cannot be loaded.
    """
    verifier_name = get_verifier_type(override or prefer)
    if verifier_name == "static":
        logger.warning("Static ZK verifier selected: proofs are not checked")
    verifier_cls = _load_class(VERIFIER_REGISTRY[verifier_name], "verifier")
    verifier = verifier_cls()

    if not isinstance(verifier, ZKVerifier):
        raise ConfigurationError(
            f"Verifier instance {verifier!r} does not implement ZKVerifier"
        )

    return verifier
