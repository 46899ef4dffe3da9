"""
Unit tests for verifier and signal convention flags.
"""

import pytest

from credential_anchor import feature_flags


def test_default_verifier_is_snarkjs() -> None:
    assert feature_flags.get_verifier_type() == "snarkjs"


def test_env_var_controls_verifier(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CREDENTIAL_ANCHOR_ZK_VERIFIER", "static")
    assert feature_flags.get_verifier_type() == "static"


def test_prefer_overrides_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CREDENTIAL_ANCHOR_ZK_VERIFIER", "static")
    assert feature_flags.get_verifier_type(prefer="snarkjs") == "snarkjs"


def test_set_verifier_type_overrides_and_clears(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CREDENTIAL_ANCHOR_ZK_VERIFIER", "snarkjs")
    feature_flags.set_verifier_type("static")
    assert feature_flags.get_verifier_type() == "static"
    feature_flags.set_verifier_type(None)
    assert feature_flags.get_verifier_type() == "snarkjs"


def test_set_verifier_type_empty_string_clears() -> None:
    feature_flags.set_verifier_type("static")
    feature_flags.set_verifier_type("")
    assert feature_flags.get_verifier_type() == "snarkjs"


def test_empty_env_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CREDENTIAL_ANCHOR_ZK_VERIFIER", "")
    assert feature_flags.get_verifier_type() == "snarkjs"


def test_invalid_prefer_raises_value_error() -> None:
    with pytest.raises(ValueError, match="Invalid verifier type"):
        feature_flags.get_verifier_type(prefer="groth16-native")


def test_invalid_env_raises_value_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CREDENTIAL_ANCHOR_ZK_VERIFIER", "invalid")
    with pytest.raises(ValueError, match="Invalid verifier type"):
        feature_flags.get_verifier_type()


def test_invalid_override_raises_value_error() -> None:
    with pytest.raises(ValueError, match="Invalid verifier type"):
        feature_flags.set_verifier_type("invalid")


def test_default_signal_convention_is_v2() -> None:
    assert feature_flags.get_signal_convention() == "age_binding_v2"


def test_signal_convention_resolution_order(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CREDENTIAL_ANCHOR_SIGNAL_CONVENTION", "is_adult_v1")
    assert feature_flags.get_signal_convention() == "is_adult_v1"

    feature_flags.set_signal_convention("age_binding_v2")
    assert feature_flags.get_signal_convention() == "age_binding_v2"

    assert feature_flags.get_signal_convention(prefer="is_adult_v1") == "is_adult_v1"


def test_invalid_signal_convention_raises() -> None:
    with pytest.raises(ValueError, match="Invalid signal convention"):
        feature_flags.get_signal_convention(prefer="guess")
    with pytest.raises(ValueError, match="Invalid signal convention"):
        feature_flags.set_signal_convention(3)
