from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from credential_anchor import feature_flags
from credential_anchor.contract import IdentityHandler
from credential_anchor.hashing import Sha256FieldHasher
from credential_anchor.ledger.memory import InMemoryLedger
from credential_anchor.zk.static import StaticVerifier
from credential_anchor.zk.verifier import clear_key_cache

VERIFICATION_KEY = {"protocol": "groth16", "curve": "bn128", "nPublic": 3}

VALID_PROOF = {
    "pi_a": ["1", "1", "1"],
    "pi_b": [["1", "1"], ["1", "1"], ["1", "0"]],
    "pi_c": ["1", "1", "1"],
    "protocol": "groth16",
    "curve": "bn128",
}

FIXED_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

_ENV_VARS = (
    "CREDENTIAL_ANCHOR_ZK_VERIFIER",
    "CREDENTIAL_ANCHOR_SIGNAL_CONVENTION",
    "CREDENTIAL_ANCHOR_HASHER",
    "CREDENTIAL_ANCHOR_VK_PATH",
    "CREDENTIAL_ANCHOR_SNARKJS_BIN",
)


@pytest.fixture(autouse=True)
def reset_engine_state(monkeypatch: pytest.MonkeyPatch):
    feature_flags.set_verifier_type(None)
    feature_flags.set_signal_convention(None)
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    clear_key_cache()
    yield
    feature_flags.set_verifier_type(None)
    feature_flags.set_signal_convention(None)
    clear_key_cache()


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def verifier() -> StaticVerifier:
    return StaticVerifier()


@pytest.fixture
def handler(verifier: StaticVerifier) -> IdentityHandler:
    return IdentityHandler(
        verifier=verifier,
        verification_key=VERIFICATION_KEY,
        hasher=Sha256FieldHasher(),
    )


@pytest.fixture
def proof_json() -> str:
    return json.dumps(VALID_PROOF)
