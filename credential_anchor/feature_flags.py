"""
Feature flags for selecting the ZK verifier and the public-signal convention.

Resolution order for every flag: explicit ``prefer`` argument, in-memory
override (testing only), environment variable, built-in default.
"""

from __future__ import annotations

import os
from typing import Final

from .config import DEFAULT_SIGNAL_CONVENTION, SIGNAL_CONVENTIONS

_VALID_VERIFIERS: Final[tuple[str, ...]] = ("snarkjs", "static")
_DEFAULT_VERIFIER: Final[str] = "snarkjs"
_VERIFIER_ENV_VAR: Final[str] = "CREDENTIAL_ANCHOR_ZK_VERIFIER"

_CONVENTION_ENV_VAR: Final[str] = "CREDENTIAL_ANCHOR_SIGNAL_CONVENTION"

_verifier_override: str | None = None
_convention_override: str | None = None


def _normalize(value: str | None, valid: tuple[str, ...], label: str) -> str | None:
    if value is None:
        return None

    if not isinstance(value, str):
        raise ValueError(
            f"Invalid {label}: {value!r}. Valid options: {', '.join(valid)}"
        )

    if value == "":
        return None

    if value not in valid:
        raise ValueError(
            f"Invalid {label}: {value!r}. Valid options: {', '.join(valid)}"
        )

    return value


def _resolve(
    prefer: str | None,
    override: str | None,
    env_var: str,
    valid: tuple[str, ...],
    default: str,
    label: str,
) -> str:
    preferred = _normalize(prefer, valid, label)
    if preferred is not None:
        return preferred

    if override is not None:
        return override

    env_value = _normalize(os.getenv(env_var), valid, label)
    if env_value is not None:
        return env_value

    return default


def get_verifier_type(prefer: str | None = None) -> str:
    """
    Resolve the ZK verifier type.

    Raises:
        ValueError: If a provided verifier value is invalid.
    """
    return _resolve(
        prefer,
        _verifier_override,
        _VERIFIER_ENV_VAR,
        _VALID_VERIFIERS,
        _DEFAULT_VERIFIER,
        "verifier type",
    )


def set_verifier_type(value: str | None) -> None:
    """Set in-memory verifier override (testing only); None clears it."""
    global _verifier_override
    _verifier_override = _normalize(value, _VALID_VERIFIERS, "verifier type")


def get_signal_convention(prefer: str | None = None) -> str:
    """
    Resolve the public-signal convention used by age verification.

    Raises:
        ValueError: If a provided convention value is invalid.
    """
    return _resolve(
        prefer,
        _convention_override,
        _CONVENTION_ENV_VAR,
        SIGNAL_CONVENTIONS,
        DEFAULT_SIGNAL_CONVENTION,
        "signal convention",
    )


def set_signal_convention(value: str | None) -> None:
    """Set in-memory convention override (testing only); None clears it."""
    global _convention_override
    _convention_override = _normalize(value, SIGNAL_CONVENTIONS, "signal convention")
