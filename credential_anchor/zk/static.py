from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence, Tuple


class StaticVerifier:
    """
    Verifier with a fixed answer, for tests and local dry runs.

    Notes:
    - It does NOT check any proof. Never select it on a live ledger.
    - ``error`` makes every call raise instead, to exercise failure paths.
    """

    def __init__(self, result: bool = True, error: Optional[Exception] = None) -> None:
        self.result = result
        self.error = error
        self.calls: List[Tuple[Mapping[str, Any], List[str], Mapping[str, Any]]] = []

    def verify(
        self,
        verification_key: Mapping[str, Any],
        public_signals: Sequence[str],
        proof: Mapping[str, Any],
    ) -> bool:
        self.calls.append((verification_key, list(public_signals), proof))
        if self.error is not None:
            raise self.error
        return self.result
