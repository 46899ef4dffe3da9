"""Groth16 proof payload as produced by snarkjs."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List

from ..config import PROOF_PROTOCOL, SUPPORTED_CURVES
from ..exceptions import MalformedPayloadError

_POINT_FIELDS = ("pi_a", "pi_b", "pi_c")


@dataclass(frozen=True)
class Groth16Proof:
    pi_a: List[Any]
    pi_b: List[Any]
    pi_c: List[Any]
    protocol: str = PROOF_PROTOCOL
    curve: str = "bn128"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pi_a": self.pi_a,
            "pi_b": self.pi_b,
            "pi_c": self.pi_c,
            "protocol": self.protocol,
            "curve": self.curve,
        }

    @classmethod
    def parse(cls, raw: Any) -> "Groth16Proof":
        """
        Parse a proof from a JSON string or mapping.

        Raises:
            MalformedPayloadError: If missing, not JSON, or lacking the
                Groth16 fields
        """
        if raw is None or raw == "":
            raise MalformedPayloadError("proof is required")

        if isinstance(raw, (str, bytes, bytearray)):
            try:
                raw = json.loads(raw)
            except ValueError as exc:
                raise MalformedPayloadError("Invalid JSON for proof") from exc

        if not isinstance(raw, dict):
            raise MalformedPayloadError("proof must be a JSON object")

        for name in _POINT_FIELDS:
            if not isinstance(raw.get(name), list) or not raw[name]:
                raise MalformedPayloadError(f"proof.{name} must be a non-empty list")

        protocol = raw.get("protocol", PROOF_PROTOCOL)
        if protocol != PROOF_PROTOCOL:
            raise MalformedPayloadError(f"Unsupported proof protocol: {protocol!r}")

        curve = raw.get("curve", "bn128")
        if curve not in SUPPORTED_CURVES:
            raise MalformedPayloadError(f"Unsupported proof curve: {curve!r}")

        return cls(
            pi_a=list(raw["pi_a"]),
            pi_b=list(raw["pi_b"]),
            pi_c=list(raw["pi_c"]),
            protocol=protocol,
            curve=curve,
        )
