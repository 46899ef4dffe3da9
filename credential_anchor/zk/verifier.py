"""
External zero-knowledge verifier boundary and verification key loading.
"""

from __future__ import annotations

import functools
import json
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

from ..config import MAX_VK_BYTES, VK_PATH_ENV_VAR
from ..exceptions import KeyUnavailableError

logger = logging.getLogger(__name__)


@runtime_checkable
class ZKVerifier(Protocol):
    """``verify(verification_key, public_signals, proof) -> bool``."""

    def verify(
        self,
        verification_key: Mapping[str, Any],
        public_signals: Sequence[str],
        proof: Mapping[str, Any],
    ) -> bool:
        ...


def load_verification_key(path: str | Path | None = None) -> Mapping[str, Any]:
    """
    Load and cache a verification key JSON file.

    The key is read once per path for the lifetime of the process and
    returned as a read-only mapping. Failures are not cached.

    Args:
        path: Key file; defaults to $CREDENTIAL_ANCHOR_VK_PATH

    Raises:
        KeyUnavailableError: If no path is configured or the file cannot
            be read or parsed
    """
    if path is None:
        path = os.getenv(VK_PATH_ENV_VAR)
    if not path:
        raise KeyUnavailableError(
            f"No verification key configured (set {VK_PATH_ENV_VAR})"
        )
    return _load_cached(str(Path(path).resolve()))


@functools.lru_cache(maxsize=None)
def _load_cached(path: str) -> Mapping[str, Any]:
    key_path = Path(path)
    try:
        size = key_path.stat().st_size
        if size > MAX_VK_BYTES:
            raise KeyUnavailableError(f"Verification key at {path} is too large")
        data = json.loads(key_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        msg = f"Unable to read verification key at {path}: {exc}"
        logger.error(msg)
        raise KeyUnavailableError(msg) from exc

    if not isinstance(data, dict):
        raise KeyUnavailableError(f"Verification key at {path} is not a JSON object")

    logger.info("Loaded verification key from %s", path)
    return MappingProxyType(data)


def clear_key_cache() -> None:
    """Forget cached keys (testing only)."""
    _load_cached.cache_clear()
