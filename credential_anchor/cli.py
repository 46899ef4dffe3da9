"""
Command-line tooling for issuers and holders.

Runs off-ledger: computes credential roots, sibling paths for circuit
inputs and issuance requests. Attribute files are YAML (JSON is valid YAML):

    attributes:
      dob: "19900101"
      address: 123MainSt
    fieldOrder: [dob, address]
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
import yaml
from rich.console import Console
from rich.table import Table

from credential_anchor import __version__
from credential_anchor.exceptions import CredentialAnchorError
from credential_anchor.factory import get_field_hasher
from credential_anchor.merkle import CredentialRoot, MerkleProof, compute_credential_root, verify_proof


def _load_attributes(path: str, field_order: Optional[str]) -> tuple[Dict[str, Any], List[str], Dict[str, Any]]:
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise click.ClickException(f"Cannot read attribute file {path}: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("attributes"), dict):
        raise click.ClickException("Attribute file must contain an 'attributes' mapping")

    if field_order:
        order = [name.strip() for name in field_order.split(",") if name.strip()]
    else:
        order = data.get("fieldOrder") or []
    if not isinstance(order, list) or not order:
        raise click.ClickException("A field order is required (fieldOrder or --field-order)")

    return data["attributes"], order, data.get("salts") or {}


def _compute(ctx: click.Context, path: str, field_order: Optional[str]) -> CredentialRoot:
    attributes, order, salts = _load_attributes(path, field_order)
    try:
        return compute_credential_root(attributes, order, salts, ctx.obj["hasher"])
    except CredentialAnchorError as e:
        raise click.ClickException(str(e))


def _emit_json(data: Any, output: Optional[str]) -> None:
    text = json.dumps(data, indent=2)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        click.echo(f"✓ Wrote {output}", err=True)
    else:
        click.echo(text)


@click.group()
@click.version_option(version=__version__)
@click.option("--hasher", default=None, help="Field hasher name or dotted class path")
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, hasher: Optional[str], verbose: bool):
    """Merkle credential tooling for ledger-anchored identity credentials."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    try:
        ctx.obj["hasher"] = get_field_hasher(hasher)
    except CredentialAnchorError as e:
        raise click.ClickException(str(e))


@main.command("compute-root")
@click.argument("attributes_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--field-order", help="Comma-separated field order (overrides the file)")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_context
def compute_root(ctx: click.Context, attributes_file: str, field_order: Optional[str], as_json: bool):
    """Compute the credential root hash over an attribute file."""
    result = _compute(ctx, attributes_file, field_order)

    if as_json:
        _emit_json(
            {
                "rootHash": str(result.root),
                "fieldOrder": list(result.field_order),
                "leaves": [str(leaf) for leaf in result.leaves],
            },
            None,
        )
        return

    table = Table(title="Credential leaves")
    table.add_column("#", justify="right")
    table.add_column("Field")
    table.add_column("Leaf hash", overflow="fold")
    for i, (name, leaf) in enumerate(zip(result.field_order, result.leaves)):
        table.add_row(str(i), name, str(leaf))

    console = Console()
    console.print(table)
    console.print(f"[bold]Root hash:[/bold] {result.root}")


@main.command("prove-field")
@click.argument("attributes_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--field", "field_name", required=True, help="Field to disclose a path for")
@click.option("--field-order", help="Comma-separated field order (overrides the file)")
@click.option("--output", type=click.Path(), help="Write circuit input JSON to this file")
@click.pass_context
def prove_field(
    ctx: click.Context,
    attributes_file: str,
    field_name: str,
    field_order: Optional[str],
    output: Optional[str],
):
    """
    Produce circuit input for one field: its value, leaf and sibling path.

    The output holds the raw field value; it is the prover's private input
    and must never be submitted to the ledger.
    """
    result = _compute(ctx, attributes_file, field_order)
    try:
        proof = result.proof_for_field(field_name)
    except CredentialAnchorError as e:
        raise click.ClickException(str(e))

    attributes, _, _ = _load_attributes(attributes_file, field_order)
    path = proof.to_dict()
    _emit_json(
        {
            field_name: attributes[field_name],
            "leaf": str(result.leaves[result.field_order.index(field_name)]),
            "merkleRoot": str(result.root),
            "merklePathElements": path["pathElements"],
            "merklePathIndices": path["pathIndices"],
        },
        output,
    )


@main.command("verify-path")
@click.argument("proof_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--leaf", required=True, help="Leaf hash (decimal or 0x-hex)")
@click.option("--root", "root_hash", required=True, help="Expected root (decimal or 0x-hex)")
@click.pass_context
def verify_path(ctx: click.Context, proof_file: str, leaf: str, root_hash: str):
    """Check a sibling path file ({pathElements, pathIndices}) against a root."""
    try:
        data = json.loads(Path(proof_file).read_text(encoding="utf-8"))
        # Also accept prove-field output
        if isinstance(data, dict) and "merklePathElements" in data:
            data = {
                "pathElements": data["merklePathElements"],
                "pathIndices": data.get("merklePathIndices"),
            }
        valid = verify_proof(leaf, MerkleProof.from_dict(data), root_hash, ctx.obj["hasher"])
    except ValueError as e:
        raise click.ClickException(f"Invalid proof file: {e}")
    except CredentialAnchorError as e:
        raise click.ClickException(str(e))

    if valid:
        click.echo(click.style("✓ Path reproduces root", fg="green"))
    else:
        click.echo(click.style("✗ Path does not reproduce root", fg="red"), err=True)
        ctx.exit(1)


@main.command("issuance-request")
@click.argument("attributes_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--holder", "holder_id", required=True, help="Holder identity")
@click.option("--issuer", default="TrustedIssuer", show_default=True, help="Issuer name")
@click.option("--field-order", help="Comma-separated field order (overrides the file)")
@click.option("--output", type=click.Path(), help="Write the request to this file")
@click.pass_context
def issuance_request(
    ctx: click.Context,
    attributes_file: str,
    holder_id: str,
    issuer: str,
    field_order: Optional[str],
    output: Optional[str],
):
    """Build IssueCredential arguments; the ledger assigns the timestamp."""
    result = _compute(ctx, attributes_file, field_order)
    _emit_json(
        {
            "holderId": holder_id,
            "credentialHash": str(result.root),
            "issuer": issuer,
            "fieldOrder": list(result.field_order),
        },
        output,
    )


if __name__ == "__main__":
    main()
