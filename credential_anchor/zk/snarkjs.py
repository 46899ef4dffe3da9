"""Groth16 verification through the snarkjs command-line tool."""

from __future__ import annotations

import json
import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Mapping, Sequence

from ..config import DEFAULT_SNARKJS_BIN, SNARKJS_BIN_ENV_VAR, SNARKJS_TIMEOUT_SEC

logger = logging.getLogger(__name__)


class SnarkjsVerifier:
    """
    Run ``snarkjs groth16 verify <vk> <public> <proof>``.

    snarkjs exits with status 0 and prints ``OK!`` only for a valid proof.
    A missing binary or a timeout raises; the caller treats that the same
    as an invalid proof.
    """

    def __init__(self, binary: str | None = None, timeout: float = SNARKJS_TIMEOUT_SEC) -> None:
        self._binary = binary or os.getenv(SNARKJS_BIN_ENV_VAR, DEFAULT_SNARKJS_BIN)
        self._timeout = timeout

    def verify(
        self,
        verification_key: Mapping[str, Any],
        public_signals: Sequence[str],
        proof: Mapping[str, Any],
    ) -> bool:
        with tempfile.TemporaryDirectory(prefix="credential-anchor-") as tmp:
            tmp_dir = Path(tmp)
            vk_path = tmp_dir / "verification_key.json"
            public_path = tmp_dir / "public.json"
            proof_path = tmp_dir / "proof.json"
            vk_path.write_text(json.dumps(dict(verification_key)), encoding="utf-8")
            public_path.write_text(json.dumps(list(public_signals)), encoding="utf-8")
            proof_path.write_text(json.dumps(dict(proof)), encoding="utf-8")

            result = subprocess.run(
                [
                    self._binary,
                    "groth16",
                    "verify",
                    str(vk_path),
                    str(public_path),
                    str(proof_path),
                ],
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )

        valid = result.returncode == 0 and "OK" in result.stdout
        if not valid:
            logger.debug(
                "snarkjs rejected proof (exit %d): %s",
                result.returncode, result.stdout.strip() or result.stderr.strip(),
            )
        return valid
