"""
Merkle tree utilities for credential binding.

Leaves are field-element hashes of credential attributes in a caller-fixed
field order; the root is the credential hash anchored on the ledger.
An unpaired last node at any level is paired with itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .encoding import encode, parse_field_element
from .exceptions import (
    EmptyInputError,
    IndexOutOfRangeError,
    MalformedProofError,
    MissingFieldError,
    ValidationError,
)
from .hashing import FieldHasher

logger = logging.getLogger(__name__)


def _resolve_hasher(hasher: Optional[FieldHasher]) -> FieldHasher:
    if hasher is not None:
        return hasher
    from .factory import get_field_hasher

    return get_field_hasher()


@dataclass(frozen=True)
class MerkleTree:
    """
    Binary hash tree, ``layers[0]`` are the leaves, ``layers[-1]`` the root.
    """

    layers: Tuple[Tuple[int, ...], ...]

    @property
    def root(self) -> int:
        return self.layers[-1][0]

    @property
    def leaves(self) -> Tuple[int, ...]:
        return self.layers[0]

    @property
    def leaf_count(self) -> int:
        return len(self.layers[0])

    @property
    def height(self) -> int:
        return len(self.layers) - 1


@dataclass(frozen=True)
class MerkleProof:
    """
    Sibling path for one leaf.

    Attributes:
        path_elements: Sibling hashes from the leaf level upwards
        path_indices: 0 if the current node is a left child at that level,
            1 if it is a right child
    """

    path_elements: Tuple[int, ...]
    path_indices: Tuple[int, ...]

    def to_dict(self) -> Dict[str, Any]:
        """JSON form used by circuit inputs: decimal strings and 0/1 ints."""
        return {
            "pathElements": [str(e) for e in self.path_elements],
            "pathIndices": list(self.path_indices),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MerkleProof":
        """
        Parse the JSON form.

        Raises:
            MalformedProofError: If either list is missing or unparsable
        """
        if not isinstance(data, Mapping):
            raise MalformedProofError("Merkle proof must be an object")
        elements = data.get("pathElements")
        indices = data.get("pathIndices")
        if not isinstance(elements, (list, tuple)) or not isinstance(indices, (list, tuple)):
            raise MalformedProofError("pathElements and pathIndices must be lists")
        try:
            parsed = tuple(
                parse_field_element(e, f"pathElements[{i}]")
                for i, e in enumerate(elements)
            )
        except ValidationError as exc:
            raise MalformedProofError(str(exc)) from exc
        return cls(path_elements=parsed, path_indices=tuple(indices))


def compute_leaf_hash(value: Any, salt: Any = 0, hasher: Optional[FieldHasher] = None) -> int:
    """
    Hash one credential attribute into a leaf.

    A zero salt gives ``hash1(encode(value))``; any other salt gives
    ``hash2(encode(value), encode(salt))``.
    """
    hasher = _resolve_hasher(hasher)
    field_value = encode(value)
    salt_value = encode(salt)
    if salt_value != 0:
        return hasher.hash2(field_value, salt_value)
    return hasher.hash1(field_value)


def build_tree(leaves: Sequence[Any], hasher: Optional[FieldHasher] = None) -> MerkleTree:
    """
    Build a Merkle tree bottom-up.

    Args:
        leaves: Leaf hashes as field elements (int, decimal or 0x-hex string)

    Returns:
        MerkleTree with every layer retained for proof generation

    Raises:
        EmptyInputError: If ``leaves`` is empty

    Example:
        tree = build_tree([h0, h1, h2])
        # layers: [h0, h1, h2], [H(h0,h1), H(h2,h2)], [root]
    """
    if not leaves:
        raise EmptyInputError("Cannot build Merkle tree from empty leaves")

    hasher = _resolve_hasher(hasher)
    current = tuple(parse_field_element(leaf, "leaf") for leaf in leaves)
    layers = [current]

    while len(current) > 1:
        next_level = []
        for i in range(0, len(current), 2):
            left = current[i]
            # Odd number, duplicate last
            right = current[i + 1] if i + 1 < len(current) else left
            next_level.append(hasher.hash2(left, right))
        current = tuple(next_level)
        layers.append(current)

    logger.debug(
        "Built Merkle tree: %d leaves, height %d", len(leaves), len(layers) - 1
    )
    return MerkleTree(layers=tuple(layers))


def root_of(tree: MerkleTree) -> int:
    return tree.layers[-1][0]


def generate_proof(tree: MerkleTree, leaf_index: int) -> MerkleProof:
    """
    Generate the sibling path for ``leaf_index``.

    Raises:
        IndexOutOfRangeError: If the index is not a leaf position
    """
    leaf_count = tree.leaf_count
    if (
        isinstance(leaf_index, bool)
        or not isinstance(leaf_index, int)
        or not 0 <= leaf_index < leaf_count
    ):
        raise IndexOutOfRangeError(
            f"Leaf index {leaf_index} out of bounds (0-{leaf_count - 1})"
        )

    elements: List[int] = []
    indices: List[int] = []
    index = leaf_index

    # Every layer except the root
    for layer in tree.layers[:-1]:
        sibling_index = index ^ 1
        sibling = layer[sibling_index] if sibling_index < len(layer) else layer[index]
        elements.append(sibling)
        indices.append(index & 1)
        index //= 2

    return MerkleProof(path_elements=tuple(elements), path_indices=tuple(indices))


def verify_proof(
    leaf: Any,
    proof: MerkleProof,
    expected_root: Any,
    hasher: Optional[FieldHasher] = None,
) -> bool:
    """
    Recompute the root from a leaf and its sibling path.

    Returns:
        True if the recomputed root equals ``expected_root``

    Raises:
        MalformedProofError: If the path lists differ in length or an
            index is not 0/1
    """
    if len(proof.path_elements) != len(proof.path_indices):
        raise MalformedProofError(
            f"pathElements has {len(proof.path_elements)} entries, "
            f"pathIndices has {len(proof.path_indices)}"
        )

    hasher = _resolve_hasher(hasher)
    current = parse_field_element(leaf, "leaf")
    root = parse_field_element(expected_root, "root")

    for level, (sibling, position) in enumerate(
        zip(proof.path_elements, proof.path_indices)
    ):
        if isinstance(position, bool) or position not in (0, 1):
            raise MalformedProofError(
                f"pathIndices[{level}] must be 0 or 1, got {position!r}"
            )
        sibling = parse_field_element(sibling, f"pathElements[{level}]")
        if position == 0:
            current = hasher.hash2(current, sibling)
        else:
            current = hasher.hash2(sibling, current)

    return current == root


@dataclass(frozen=True)
class CredentialRoot:
    root: int
    tree: MerkleTree
    leaves: Tuple[int, ...]
    field_order: Tuple[str, ...]

    def proof_for_field(self, field_name: str) -> MerkleProof:
        """Sibling path for the leaf of ``field_name``."""
        try:
            index = self.field_order.index(field_name)
        except ValueError:
            raise MissingFieldError(field_name) from None
        return generate_proof(self.tree, index)


def compute_credential_root(
    attributes: Mapping[str, Any],
    field_order: Sequence[str],
    salts: Optional[Mapping[str, Any]] = None,
    hasher: Optional[FieldHasher] = None,
) -> CredentialRoot:
    """
    Compute the credential hash over ``attributes`` in ``field_order``.

    The order is part of the credential's identity: the same values in a
    different order produce an unrelated root.

    Raises:
        ValidationError: If ``field_order`` is empty
        MissingFieldError: If a named field is absent
    """
    if not field_order:
        raise ValidationError("fieldOrder must name at least one field")

    hasher = _resolve_hasher(hasher)
    salts = salts or {}
    leaves = []
    for field_name in field_order:
        if field_name not in attributes:
            raise MissingFieldError(field_name)
        leaves.append(
            compute_leaf_hash(attributes[field_name], salts.get(field_name, 0), hasher)
        )

    tree = build_tree(leaves, hasher)
    return CredentialRoot(
        root=root_of(tree),
        tree=tree,
        leaves=tuple(leaves),
        field_order=tuple(field_order),
    )
