import json

import pytest
import yaml
from click.testing import CliRunner

from credential_anchor.cli import main
from credential_anchor.hashing import Sha256FieldHasher
from credential_anchor.merkle import compute_credential_root, verify_proof, MerkleProof

ATTRIBUTES = {"dob": "19900101", "address": "123MainSt", "name": "JohnDoe", "ssn": "123456789"}
FIELD_ORDER = ["dob", "address", "name", "ssn"]
EXPECTED = compute_credential_root(ATTRIBUTES, FIELD_ORDER, hasher=Sha256FieldHasher())


@pytest.fixture
def attributes_file(tmp_path):
    path = tmp_path / "credential.yaml"
    path.write_text(
        yaml.safe_dump({"attributes": ATTRIBUTES, "fieldOrder": FIELD_ORDER}),
        encoding="utf-8",
    )
    return path


def test_compute_root_json(attributes_file):
    runner = CliRunner()
    result = runner.invoke(main, ["compute-root", str(attributes_file), "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["rootHash"] == str(EXPECTED.root)
    assert data["fieldOrder"] == FIELD_ORDER
    assert data["leaves"] == [str(leaf) for leaf in EXPECTED.leaves]


def test_compute_root_table(attributes_file):
    runner = CliRunner()
    result = runner.invoke(main, ["compute-root", str(attributes_file)])

    assert result.exit_code == 0, result.output
    assert "Root hash" in result.output
    assert "dob" in result.output


def test_field_order_option_overrides_file(attributes_file):
    runner = CliRunner()
    result = runner.invoke(
        main,
        ["compute-root", str(attributes_file), "--json", "--field-order", "address,dob,name,ssn"],
    )

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["rootHash"] != str(EXPECTED.root)


def test_missing_field_fails(attributes_file):
    runner = CliRunner()
    result = runner.invoke(
        main, ["compute-root", str(attributes_file), "--field-order", "dob,email"]
    )

    assert result.exit_code != 0
    assert 'Field "email" not found' in result.output


def test_file_without_attributes_fails(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("fieldOrder: [dob]\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(main, ["compute-root", str(path)])

    assert result.exit_code != 0
    assert "attributes" in result.output


def test_prove_field_and_verify_path(attributes_file, tmp_path):
    runner = CliRunner()
    output = tmp_path / "circuit_input.json"
    result = runner.invoke(
        main,
        ["prove-field", str(attributes_file), "--field", "dob", "--output", str(output)],
    )
    assert result.exit_code == 0, result.output

    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["dob"] == "19900101"
    assert data["merkleRoot"] == str(EXPECTED.root)
    assert data["leaf"] == str(EXPECTED.leaves[0])
    proof = MerkleProof.from_dict(
        {"pathElements": data["merklePathElements"], "pathIndices": data["merklePathIndices"]}
    )
    assert verify_proof(data["leaf"], proof, data["merkleRoot"], Sha256FieldHasher())

    result = runner.invoke(
        main,
        ["verify-path", str(output), "--leaf", data["leaf"], "--root", hex(EXPECTED.root)],
    )
    assert result.exit_code == 0, result.output
    assert "Path reproduces root" in result.output

    result = runner.invoke(
        main,
        ["verify-path", str(output), "--leaf", str(EXPECTED.leaves[1]), "--root", data["merkleRoot"]],
    )
    assert result.exit_code == 1


def test_verify_path_rejects_malformed_file(tmp_path):
    path = tmp_path / "path.json"
    path.write_text(json.dumps({"pathElements": ["1"]}), encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(main, ["verify-path", str(path), "--leaf", "1", "--root", "1"])

    assert result.exit_code != 0
    assert "pathIndices" in result.output


def test_issuance_request(attributes_file):
    runner = CliRunner()
    result = runner.invoke(
        main, ["issuance-request", str(attributes_file), "--holder", "u1"]
    )

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == {
        "holderId": "u1",
        "credentialHash": str(EXPECTED.root),
        "issuer": "TrustedIssuer",
        "fieldOrder": FIELD_ORDER,
    }


def test_unknown_hasher_fails(attributes_file):
    runner = CliRunner()
    result = runner.invoke(main, ["--hasher", "md5", "compute-root", str(attributes_file)])

    assert result.exit_code != 0
    assert "Unknown hasher" in result.output
