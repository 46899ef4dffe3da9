"""
Field hashing seam for Merkle credential trees.

The hash permutation is treated as an opaque one-way function over field
elements. The default hasher uses SHA-256 with domain separation, reduced
into the BN254 scalar field. Circuit-compatible hashers (e.g. Poseidon
bindings) plug in through the ``FieldHasher`` protocol.
"""

from __future__ import annotations

import hashlib
from typing import Callable, Protocol, runtime_checkable

from .config import DOMAIN_SEPARATORS, FIELD_MODULUS


@runtime_checkable
class FieldHasher(Protocol):
    name: str

    def hash1(self, value: int) -> int:
        ...

    def hash2(self, left: int, right: int) -> int:
        ...


def _field_bytes(value: int) -> bytes:
    return (value % FIELD_MODULUS).to_bytes(32, "big")


class Sha256FieldHasher:
    """
    SHA-256 over 32-byte big-endian field elements.

    Inputs are reduced modulo the field before hashing, outputs are reduced
    into the field so they can be fed back as tree nodes.
    """

    name = "sha256"

    def hash1(self, value: int) -> int:
        digest = hashlib.sha256(
            DOMAIN_SEPARATORS["merkle_leaf"] + _field_bytes(value)
        ).digest()
        return int.from_bytes(digest, "big") % FIELD_MODULUS

    def hash2(self, left: int, right: int) -> int:
        # Fixed left||right ordering (no sorting)
        digest = hashlib.sha256(
            DOMAIN_SEPARATORS["merkle_node"] + _field_bytes(left) + _field_bytes(right)
        ).digest()
        return int.from_bytes(digest, "big") % FIELD_MODULUS


class CallableFieldHasher:
    """
    Adapt an external hash over a list of field elements.

    ``fn`` receives ``[x]`` for leaves and ``[left, right]`` for nodes and
    must return an int or a decimal string, which is how circomlib-style
    Poseidon bindings are usually exposed.
    """

    def __init__(self, fn: Callable[[list[int]], int | str], name: str = "external") -> None:
        self._fn = fn
        self.name = name

    def hash1(self, value: int) -> int:
        return int(self._fn([value])) % FIELD_MODULUS

    def hash2(self, left: int, right: int) -> int:
        return int(self._fn([left, right])) % FIELD_MODULUS
