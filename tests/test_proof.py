"""
Tests for proof generation, compilation and verification.
"""
import random

import pytest

from conftest import make_key, make_value
from sparsetree.core.models.proof import CompiledMerkleProof, MerkleProof, ProofSibling
from sparsetree.core.state_merkle import (
    Blake2bHasher,
    InvalidDigestError,
    MalformedProofError,
    SparseMerkleTree,
    ZERO_H256,
    compile_proof,
    compute_root,
    verify,
)
from sparsetree.core.state_merkle.compiler import OP_HASH, OP_LEAF, OP_PROOF, OP_ZEROS

A = b"\xaa" * 32
B = b"\xbb" * 32


@pytest.fixture
def populated():
    """A tree with 32 random keys and their values."""
    rng = random.Random(1234)
    tree = SparseMerkleTree(hasher=Blake2bHasher())
    pairs = {rng.randbytes(32): rng.randbytes(32) for _ in range(32)}
    tree.update_all(pairs.items())
    return tree, pairs


def prove(tree, keys):
    return tree.merkle_proof(keys).compile(keys)


def test_two_key_scenario():
    """Test the proof for one of two adjacent keys."""
    hasher = Blake2bHasher()
    tree = SparseMerkleTree(hasher=hasher)
    k0, k1 = make_key(0), make_key(1)
    tree.update(k0, A)
    tree.update(k1, B)

    # The two leaves are siblings at the bottom; everything above is left-most
    expected = hasher.hash_branch(hasher.hash_leaf(k0, A), hasher.hash_leaf(k1, B))
    for _ in range(255):
        expected = hasher.hash_branch(expected, ZERO_H256)
    assert tree.root() == expected

    proof = tree.merkle_proof([k0])
    assert proof.siblings == [
        ProofSibling(depth=256, path=1, digest=hasher.hash_leaf(k1, B))
    ]

    compiled = proof.compile([k0])
    assert len(compiled) == 1 + 33 + 2
    assert compiled.data[0] == OP_LEAF
    assert compiled.data[1] == OP_PROOF
    assert compiled.data[34:] == bytes([OP_ZEROS, 255])

    assert compiled.verify(expected, [(k0, A)], hasher)
    assert not compiled.verify(expected, [(k0, B)], hasher)


def test_single_key_round_trip(populated):
    """Test that every key verifies with its own proof."""
    tree, pairs = populated
    for key, value in pairs.items():
        compiled = prove(tree, [key])
        assert compiled.verify(tree.root(), [(key, value)], tree.hasher)


def test_tampered_value_and_root(populated):
    """Test that a changed value or root is rejected without an error."""
    tree, pairs = populated
    key, value = next(iter(pairs.items()))
    compiled = prove(tree, [key])

    tampered_value = bytes([value[0] ^ 1]) + value[1:]
    tampered_root = bytes([tree.root()[0] ^ 1]) + tree.root()[1:]

    assert not compiled.verify(tree.root(), [(key, tampered_value)], tree.hasher)
    assert not compiled.verify(tampered_root, [(key, value)], tree.hasher)
    assert not compiled.verify(tree.root(), [(key, ZERO_H256)], tree.hasher)


def test_proof_against_later_root(populated):
    """Test that a proof fails once the tree has moved on."""
    tree, pairs = populated
    key, value = next(iter(pairs.items()))
    compiled = prove(tree, [key])
    old_root = tree.root()

    tree.update(make_key(77), make_value(77))

    assert compiled.verify(old_root, [(key, value)], tree.hasher)
    assert not compiled.verify(tree.root(), [(key, value)], tree.hasher)


def test_multi_key_proof(populated):
    """Test a proof covering present and absent keys at once."""
    tree, pairs = populated
    present = list(pairs)[:6]
    absent = [make_key(5), make_key(2**255 + 3)]
    keys = present + absent

    compiled = prove(tree, keys)
    claimed = [(key, tree.get(key)) for key in keys]

    assert compiled.verify(tree.root(), claimed, tree.hasher)
    assert not compiled.verify(tree.root(), claimed[:-1] + [(absent[-1], A)], tree.hasher)


def test_exclusion_proof(populated):
    """Test proving that a key is absent."""
    tree, _ = populated
    key = make_key(123456789)
    compiled = prove(tree, [key])

    assert compiled.verify(tree.root(), [(key, ZERO_H256)], tree.hasher)
    assert not compiled.verify(tree.root(), [(key, A)], tree.hasher)


def test_exclusion_proof_in_empty_tree(tree):
    """Test that any key is provably absent from the empty tree."""
    key = make_key(9)
    compiled = prove(tree, [key])

    assert compiled.data == bytes([OP_LEAF, OP_ZEROS, 0])
    assert compiled.verify(ZERO_H256, [(key, ZERO_H256)], tree.hasher)


def test_shared_siblings_are_omitted():
    """Test that a sibling on another queried path is not recorded."""
    tree = SparseMerkleTree(hasher=Blake2bHasher())
    tree.update(make_key(0), A)
    tree.update(make_key(1), B)

    assert tree.merkle_proof([make_key(0), make_key(1)]).siblings == []

    compiled = prove(tree, [make_key(0), make_key(1)])
    assert compiled.data == bytes([OP_LEAF, OP_LEAF, OP_HASH, OP_ZEROS, 255])
    assert compiled.verify(tree.root(), [(make_key(1), B), (make_key(0), A)], tree.hasher)


def test_compile_is_deterministic(populated):
    """Test that key order and duplicates do not change the compiled bytes."""
    tree, pairs = populated
    keys = list(pairs)[:8]
    proof = tree.merkle_proof(keys)

    reordered = list(reversed(keys)) + keys[:2]
    assert proof.compile(keys) == proof.compile(reordered)
    assert proof.compile(keys).data == compile_proof(tree.merkle_proof(reordered), keys).data


def test_compile_rejects_other_keys(populated):
    """Test that compiling for a different key set is an error."""
    tree, pairs = populated
    keys = list(pairs)[:3]
    proof = tree.merkle_proof(keys)

    with pytest.raises(MalformedProofError):
        proof.compile(keys[:2])
    with pytest.raises(MalformedProofError):
        proof.compile(keys + [make_key(1)])


def test_compaction_with_shared_prefix():
    """Test that clustered keys compile smaller than separate proofs."""
    rng = random.Random(99)
    tree = SparseMerkleTree(hasher=Blake2bHasher())
    for _ in range(64):
        tree.update(rng.randbytes(32), rng.randbytes(32))
    clustered = [b"\x81\x00" + rng.randbytes(30) for _ in range(8)]
    for key in clustered:
        tree.update(key, rng.randbytes(32))

    combined = prove(tree, clustered)
    separate = sum(len(prove(tree, [key])) for key in clustered)

    assert len(combined) < separate
    assert combined.verify(
        tree.root(), [(key, tree.get(key)) for key in clustered], tree.hasher
    )


def test_empty_proof(tree):
    """Test that the empty key set proves only the zero root."""
    proof = tree.merkle_proof([])
    compiled = proof.compile([])

    assert len(compiled) == 0
    assert compiled.verify(ZERO_H256, [], tree.hasher)
    assert not compiled.verify(b"\x01" * 32, [], tree.hasher)


def test_compute_root(populated):
    """Test recomputing the root from a proof."""
    tree, pairs = populated
    key, value = next(iter(pairs.items()))
    compiled = prove(tree, [key])

    assert compute_root(compiled, [(key, value)], tree.hasher) == tree.root()
    assert compiled.compute_root([(key, value)], tree.hasher) == tree.root()


def test_proof_serialization(populated):
    """Test raw and compiled proofs survive hex conversion."""
    tree, pairs = populated
    keys = list(pairs)[:4]
    proof = tree.merkle_proof(keys)

    assert MerkleProof.from_dict(proof.to_dict()) == proof

    compiled = proof.compile(keys)
    assert CompiledMerkleProof.from_hex(compiled.to_hex()) == compiled
    assert CompiledMerkleProof.from_hex("0x" + compiled.to_hex()) == compiled


def test_sibling_path_must_fit_depth():
    """Test that a sibling position is validated against its depth."""
    with pytest.raises(ValueError):
        ProofSibling(depth=1, path=2, digest=A)


@pytest.mark.parametrize(
    "data, pairs",
    [
        # Unknown opcode
        (bytes([0x00]), [(make_key(0), A)]),
        # Truncated sibling digest
        (bytes([OP_LEAF, OP_PROOF]) + b"\x01" * 10, [(make_key(0), A)]),
        # Truncated zero run
        (bytes([OP_LEAF, OP_ZEROS]), [(make_key(0), A)]),
        # Branch merge with a single subtree
        (bytes([OP_LEAF, OP_HASH]), [(make_key(0), A)]),
        # Branch merge of subtrees at different depths
        (bytes([OP_LEAF, OP_ZEROS, 1, OP_LEAF, OP_HASH]), [(make_key(0), A), (make_key(2), B)]),
        # Climbing past the root
        (bytes([OP_LEAF, OP_ZEROS, 0, OP_ZEROS, 1]), [(make_key(0), A)]),
        # Never reaches the root
        (bytes([OP_LEAF]), [(make_key(0), A)]),
        # More leaves than pairs
        (bytes([OP_LEAF, OP_ZEROS, 0]), []),
        # Fewer leaves than pairs
        (bytes([OP_LEAF, OP_ZEROS, 0]), [(make_key(0), A), (make_key(1), B)]),
        # Sibling merge before any leaf
        (bytes([OP_ZEROS, 1]), []),
        # Duplicate claimed keys
        (bytes([OP_LEAF, OP_ZEROS, 0]), [(make_key(0), A), (make_key(0), A)]),
    ],
)
def test_malformed_proofs(data, pairs):
    """Test that structurally broken proofs raise instead of returning False."""
    compiled = CompiledMerkleProof(data=data)

    with pytest.raises(MalformedProofError):
        verify(compiled, ZERO_H256, pairs, Blake2bHasher())


def test_wrong_claimed_key_in_multi_key_proof():
    """Test that a valid proof claimed for the wrong key is rejected, not malformed."""
    hasher = Blake2bHasher()
    tree = SparseMerkleTree(hasher=hasher)
    for n in (0, 1, 4):
        tree.update(make_key(n), make_value(n))
    compiled = prove(tree, [make_key(0), make_key(1)])

    assert compiled.verify(
        tree.root(), [(make_key(0), make_value(0)), (make_key(1), make_value(1))], hasher
    )
    assert not compiled.verify(
        tree.root(), [(make_key(0), make_value(0)), (make_key(4), make_value(4))], hasher
    )


def test_claimed_keys_that_are_not_siblings():
    """Test that merging two claimed keys that do not share a parent returns False."""
    compiled = CompiledMerkleProof(data=bytes([OP_LEAF, OP_LEAF, OP_HASH, OP_ZEROS, 255]))
    pairs = [(make_key(0), A), (make_key(2), B)]
    hasher = Blake2bHasher()

    assert not verify(compiled, ZERO_H256, pairs, hasher)
    # The program still replays to a root, it just cannot belong to these keys
    assert not verify(compiled, compute_root(compiled, pairs, hasher), pairs, hasher)


def test_pair_count_must_match(populated):
    """Test that a valid proof rejects a different number of pairs."""
    tree, pairs = populated
    key, value = next(iter(pairs.items()))
    compiled = prove(tree, [key])

    with pytest.raises(MalformedProofError):
        compiled.verify(tree.root(), [(key, value), (make_key(1), A)], tree.hasher)
    with pytest.raises(MalformedProofError):
        compiled.verify(tree.root(), [], tree.hasher)


def test_invalid_root_width(populated):
    """Test that a wrong-width root is an input error."""
    tree, pairs = populated
    key, value = next(iter(pairs.items()))

    with pytest.raises(InvalidDigestError):
        prove(tree, [key]).verify(b"\x00" * 16, [(key, value)], tree.hasher)
