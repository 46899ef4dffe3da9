"""Tests for Merkle credential tree utilities"""

import pytest

from credential_anchor.encoding import encode
from credential_anchor.exceptions import (
    EmptyInputError,
    IndexOutOfRangeError,
    MalformedProofError,
    MissingFieldError,
    ValidationError,
)
from credential_anchor.hashing import CallableFieldHasher, Sha256FieldHasher
from credential_anchor.merkle import (
    MerkleProof,
    build_tree,
    compute_credential_root,
    compute_leaf_hash,
    generate_proof,
    root_of,
    verify_proof,
)

HASHER = Sha256FieldHasher()

ATTRIBUTES = {
    "dob": "19900101",
    "address": "123MainSt",
    "name": "JohnDoe",
    "ssn": "123456789",
}
FIELD_ORDER = ["dob", "address", "name", "ssn"]


def _leaves(count):
    return [HASHER.hash1(i + 1) for i in range(count)]


class TestMerkleTreeBuild:
    """Test tree building"""

    def test_single_leaf_tree(self):
        """Single leaf tree: root is the leaf, height 0"""
        leaf = HASHER.hash1(7)
        tree = build_tree([leaf], HASHER)

        assert root_of(tree) == leaf
        assert tree.height == 0
        assert generate_proof(tree, 0) == MerkleProof((), ())

    def test_two_leaf_tree(self):
        leaves = _leaves(2)
        tree = build_tree(leaves, HASHER)

        assert root_of(tree) == HASHER.hash2(leaves[0], leaves[1])
        assert tree.height == 1

    def test_four_leaf_tree(self):
        """Four leaf balanced tree"""
        leaves = _leaves(4)
        tree = build_tree(leaves, HASHER)

        node01 = HASHER.hash2(leaves[0], leaves[1])
        node23 = HASHER.hash2(leaves[2], leaves[3])
        assert root_of(tree) == HASHER.hash2(node01, node23)
        assert tree.layers[1] == (node01, node23)

    def test_odd_leaf_count_duplicates_last(self):
        """Three leaves: (l0, l1), (l2, l2)"""
        leaves = _leaves(3)
        tree = build_tree(leaves, HASHER)

        node01 = HASHER.hash2(leaves[0], leaves[1])
        node22 = HASHER.hash2(leaves[2], leaves[2])
        assert root_of(tree) == HASHER.hash2(node01, node22)

    def test_odd_upper_level_duplicates_last(self):
        """Five leaves pad at level 0 and level 1"""
        leaves = _leaves(5)
        tree = build_tree(leaves, HASHER)

        n01 = HASHER.hash2(leaves[0], leaves[1])
        n23 = HASHER.hash2(leaves[2], leaves[3])
        n44 = HASHER.hash2(leaves[4], leaves[4])
        upper_left = HASHER.hash2(n01, n23)
        upper_right = HASHER.hash2(n44, n44)
        assert root_of(tree) == HASHER.hash2(upper_left, upper_right)
        assert tree.height == 3

    @pytest.mark.parametrize("count,height", [(1, 0), (2, 1), (3, 2), (4, 2), (5, 3), (8, 3), (9, 4)])
    def test_height_is_ceil_log2(self, count, height):
        assert build_tree(_leaves(count), HASHER).height == height

    def test_leaves_accept_hex_and_decimal(self):
        leaves = _leaves(2)
        as_text = [hex(leaves[0]), str(leaves[1])]
        assert root_of(build_tree(as_text, HASHER)) == root_of(build_tree(leaves, HASHER))

    def test_empty_leaves_raises(self):
        with pytest.raises(EmptyInputError):
            build_tree([], HASHER)

    def test_default_hasher_is_sha256(self):
        leaves = _leaves(3)
        assert root_of(build_tree(leaves)) == root_of(build_tree(leaves, HASHER))


class TestProofGeneration:
    def test_three_leaf_last_leaf_is_own_sibling(self):
        leaves = _leaves(3)
        tree = build_tree(leaves, HASHER)
        proof = generate_proof(tree, 2)

        assert proof.path_elements[0] == leaves[2]
        assert proof.path_indices == (0, 1)
        assert proof.path_elements[1] == HASHER.hash2(leaves[0], leaves[1])

    def test_path_indices_follow_position(self):
        tree = build_tree(_leaves(4), HASHER)
        assert generate_proof(tree, 0).path_indices == (0, 0)
        assert generate_proof(tree, 1).path_indices == (1, 0)
        assert generate_proof(tree, 2).path_indices == (0, 1)
        assert generate_proof(tree, 3).path_indices == (1, 1)

    @pytest.mark.parametrize("index", [-1, 3, 100, True, "0"])
    def test_index_out_of_range(self, index):
        tree = build_tree(_leaves(3), HASHER)
        with pytest.raises(IndexOutOfRangeError):
            generate_proof(tree, index)

    def test_proof_dict_form(self):
        tree = build_tree(_leaves(2), HASHER)
        proof = generate_proof(tree, 1)
        data = proof.to_dict()

        assert data["pathIndices"] == [1]
        assert data["pathElements"] == [str(tree.leaves[0])]
        assert MerkleProof.from_dict(data) == proof


class TestMerklePathVerification:
    @pytest.mark.parametrize("count", [1, 2, 3, 4, 5, 7, 8, 13])
    def test_every_leaf_verifies(self, count):
        leaves = _leaves(count)
        tree = build_tree(leaves, HASHER)
        root = root_of(tree)
        for i, leaf in enumerate(leaves):
            assert verify_proof(leaf, generate_proof(tree, i), root, HASHER) is True

    def test_mutated_leaf_fails(self):
        leaves = _leaves(4)
        tree = build_tree(leaves, HASHER)
        proof = generate_proof(tree, 1)
        assert verify_proof(leaves[1] + 1, proof, root_of(tree), HASHER) is False

    def test_mutated_sibling_fails(self):
        leaves = _leaves(4)
        tree = build_tree(leaves, HASHER)
        proof = generate_proof(tree, 0)
        for level in range(len(proof.path_elements)):
            elements = list(proof.path_elements)
            elements[level] += 1
            tampered = MerkleProof(tuple(elements), proof.path_indices)
            assert verify_proof(leaves[0], tampered, root_of(tree), HASHER) is False

    def test_flipped_index_fails(self):
        leaves = _leaves(4)
        tree = build_tree(leaves, HASHER)
        proof = generate_proof(tree, 0)
        flipped = MerkleProof(proof.path_elements, (1, 0))
        assert verify_proof(leaves[0], flipped, root_of(tree), HASHER) is False

    def test_wrong_root_fails(self):
        leaves = _leaves(2)
        tree = build_tree(leaves, HASHER)
        assert verify_proof(leaves[0], generate_proof(tree, 0), root_of(tree) + 1, HASHER) is False

    def test_hex_root_matches_decimal(self):
        leaves = _leaves(4)
        tree = build_tree(leaves, HASHER)
        assert verify_proof(str(leaves[3]), generate_proof(tree, 3), hex(root_of(tree)), HASHER)

    def test_length_mismatch_raises(self):
        with pytest.raises(MalformedProofError):
            verify_proof(1, MerkleProof((1, 2), (0,)), 3, HASHER)

    def test_bad_index_value_raises(self):
        with pytest.raises(MalformedProofError):
            verify_proof(1, MerkleProof((1,), (2,)), 3, HASHER)

    def test_from_dict_rejects_missing_lists(self):
        with pytest.raises(MalformedProofError):
            MerkleProof.from_dict({"pathElements": ["1"]})
        with pytest.raises(MalformedProofError):
            MerkleProof.from_dict({"pathElements": ["zz"], "pathIndices": [0]})


class TestCredentialRoot:
    def test_leaves_follow_field_order(self):
        result = compute_credential_root(ATTRIBUTES, FIELD_ORDER, hasher=HASHER)
        expected = [HASHER.hash1(encode(ATTRIBUTES[name])) for name in FIELD_ORDER]

        assert list(result.leaves) == expected
        assert result.root == root_of(build_tree(expected, HASHER))
        assert result.field_order == tuple(FIELD_ORDER)

    def test_deterministic(self):
        first = compute_credential_root(ATTRIBUTES, FIELD_ORDER, hasher=HASHER)
        second = compute_credential_root(dict(ATTRIBUTES), list(FIELD_ORDER), hasher=HASHER)
        assert first.root == second.root

    def test_field_order_is_part_of_identity(self):
        original = compute_credential_root(ATTRIBUTES, FIELD_ORDER, hasher=HASHER)
        permuted = compute_credential_root(
            ATTRIBUTES, ["address", "dob", "name", "ssn"], hasher=HASHER
        )
        assert original.root != permuted.root

    def test_changed_value_changes_root(self):
        original = compute_credential_root(ATTRIBUTES, FIELD_ORDER, hasher=HASHER)
        altered = compute_credential_root(
            {**ATTRIBUTES, "dob": "19900102"}, FIELD_ORDER, hasher=HASHER
        )
        assert original.root != altered.root

    def test_missing_field_raises(self):
        with pytest.raises(MissingFieldError, match="email"):
            compute_credential_root(ATTRIBUTES, FIELD_ORDER + ["email"], hasher=HASHER)

    def test_empty_field_order_raises(self):
        with pytest.raises(ValidationError):
            compute_credential_root(ATTRIBUTES, [], hasher=HASHER)

    def test_proof_for_field(self):
        result = compute_credential_root(ATTRIBUTES, FIELD_ORDER, hasher=HASHER)
        proof = result.proof_for_field("name")
        assert verify_proof(result.leaves[2], proof, result.root, HASHER)
        with pytest.raises(MissingFieldError):
            result.proof_for_field("email")

    def test_salted_leaf(self):
        assert compute_leaf_hash("JohnDoe", 0, HASHER) == HASHER.hash1(encode("JohnDoe"))
        assert compute_leaf_hash("JohnDoe", "99", HASHER) == HASHER.hash2(encode("JohnDoe"), 99)

        plain = compute_credential_root(ATTRIBUTES, FIELD_ORDER, hasher=HASHER)
        salted = compute_credential_root(
            ATTRIBUTES, FIELD_ORDER, salts={"ssn": "12345"}, hasher=HASHER
        )
        assert plain.leaves[:3] == salted.leaves[:3]
        assert plain.leaves[3] != salted.leaves[3]

    def test_external_hasher_plugs_in(self):
        calls = []

        def toy_hash(inputs):
            calls.append(list(inputs))
            return str(sum((i + 1) * v for i, v in enumerate(inputs)) + 1)

        hasher = CallableFieldHasher(toy_hash, name="toy")
        result = compute_credential_root({"a": "1", "b": "2"}, ["a", "b"], hasher=hasher)

        # leaves: 1*1+1=2, 1*2+1=3 ; root: 2 + 2*3 + 1 = 9
        assert result.leaves == (2, 3)
        assert result.root == 9
        assert calls == [[1], [2], [2, 3]]
