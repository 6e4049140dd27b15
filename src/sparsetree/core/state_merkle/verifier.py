"""
Verifier for compiled Sparse Merkle Tree proofs.

Leaf digests are always recomputed from the claimed (key, value) pairs; the
proof only contributes sibling digests and the order of merges.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from sparsetree.core.models.proof import CompiledMerkleProof
from sparsetree.core.state_merkle.compiler import OP_HASH, OP_LEAF, OP_PROOF, OP_ZEROS
from sparsetree.core.state_merkle.errors import (
    InvalidDigestError,
    InvalidValueError,
    MalformedProofError,
)
from sparsetree.core.state_merkle.h256 import (
    H256_SIZE,
    TREE_HEIGHT,
    ZERO_H256,
    H256Like,
    path_bit,
    path_prefix,
    to_h256,
    to_path,
)
from sparsetree.core.state_merkle.hasher import Hasher, default_hasher

logger = logging.getLogger(__name__)


class _Subtree:
    """A tracked subtree on the verifier stack."""

    __slots__ = ("depth", "path", "digest")

    def __init__(self, depth: int, path: int, digest: bytes):
        self.depth = depth
        self.path = path
        self.digest = digest


def _climb(stack: List[_Subtree], sibling: bytes, hasher: Hasher) -> None:
    if not stack:
        raise MalformedProofError("Sibling merge with no tracked subtree")
    top = stack[-1]
    if top.depth == 0:
        raise MalformedProofError("Sibling merge above the root")
    if path_bit(top.path, top.depth):
        top.digest = hasher.hash_branch(sibling, top.digest)
    else:
        top.digest = hasher.hash_branch(top.digest, sibling)
    top.depth -= 1


def _merge_tracked(stack: List[_Subtree], hasher: Hasher) -> bool:
    """Merge the two topmost subtrees; False if the claimed keys are not siblings here."""
    if len(stack) < 2:
        raise MalformedProofError("Branch merge needs two tracked subtrees")
    right = stack.pop()
    left = stack[-1]
    depth = left.depth
    if depth == 0 or right.depth != depth:
        raise MalformedProofError(
            f"Branch merge of subtrees at depths {left.depth} and {right.depth}"
        )
    fits = (
        path_prefix(left.path, depth - 1) == path_prefix(right.path, depth - 1)
        and path_bit(left.path, depth) == 0
        and path_bit(right.path, depth) == 1
    )
    left.digest = hasher.hash_branch(left.digest, right.digest)
    left.depth -= 1
    return fits


def _replay(
    proof: CompiledMerkleProof,
    pairs: Sequence[Tuple[H256Like, H256Like]],
    hasher: Hasher,
) -> Tuple[bytes, bool]:
    """Run the proof program; structural defects raise, claim mismatches are flagged.

    Returns:
        Tuple[bytes, bool]: The recomputed root, and whether the claimed keys
        fit every branch merge of the proof
    """
    leaves = sorted(
        (to_h256(key), to_h256(value, InvalidValueError, "value")) for key, value in pairs
    )
    for (key, _), (next_key, _) in zip(leaves, leaves[1:]):
        if key == next_key:
            raise MalformedProofError(f"Duplicate key in claimed pairs: {key.hex()}")

    data = proof.data
    stack: List[_Subtree] = []
    fits = True
    consumed = 0
    pos = 0
    while pos < len(data):
        op = data[pos]
        pos += 1
        if op == OP_LEAF:
            if consumed >= len(leaves):
                raise MalformedProofError(
                    f"Proof has more leaves than the {len(leaves)} claimed pairs"
                )
            key, value = leaves[consumed]
            consumed += 1
            stack.append(_Subtree(TREE_HEIGHT, to_path(key), hasher.hash_leaf(key, value)))
        elif op == OP_PROOF:
            if pos + H256_SIZE > len(data):
                raise MalformedProofError("Truncated sibling digest")
            _climb(stack, data[pos:pos + H256_SIZE], hasher)
            pos += H256_SIZE
        elif op == OP_ZEROS:
            if pos >= len(data):
                raise MalformedProofError("Truncated zero run")
            count = data[pos] or TREE_HEIGHT
            pos += 1
            for _ in range(count):
                _climb(stack, ZERO_H256, hasher)
        elif op == OP_HASH:
            fits = _merge_tracked(stack, hasher) and fits
        else:
            raise MalformedProofError(f"Unknown opcode 0x{op:02x} at offset {pos - 1}")

    if consumed != len(leaves):
        raise MalformedProofError(
            f"Proof has {consumed} leaves but {len(leaves)} pairs were claimed"
        )
    if not leaves:
        return ZERO_H256, fits
    if len(stack) != 1 or stack[0].depth != 0:
        raise MalformedProofError("Proof does not reduce to a single root")
    return stack[0].digest, fits


def compute_root(
    proof: CompiledMerkleProof,
    pairs: Sequence[Tuple[H256Like, H256Like]],
    hasher: Optional[Hasher] = None,
) -> bytes:
    """Replay a compiled proof over claimed pairs.

    Claimed keys that do not fit the proof still yield a root; it just
    will not match the tree's.

    Args:
        proof: Compiled proof
        pairs: Claimed (key, value) pairs, in any order
        hasher: Hasher the tree was built with (default from config)

    Returns:
        bytes: The root implied by the proof and the pairs
    """
    computed, _ = _replay(proof, pairs, hasher or default_hasher())
    return computed


def verify(
    proof: CompiledMerkleProof,
    root: H256Like,
    pairs: Sequence[Tuple[H256Like, H256Like]],
    hasher: Optional[Hasher] = None,
) -> bool:
    """Verify claimed pairs against a root.

    Args:
        proof: Compiled proof
        root: Claimed root digest
        pairs: Claimed (key, value) pairs
        hasher: Hasher the tree was built with (default from config)

    Returns:
        bool: True if the proof recomputes ``root``
    """
    root = to_h256(root, InvalidDigestError, "root")
    computed, fits = _replay(proof, pairs, hasher or default_hasher())
    if not fits:
        logger.debug("Claimed keys do not fit the branch structure of the proof")
        return False
    if computed != root:
        logger.debug(f"Proof computed root {computed.hex()}, expected {root.hex()}")
        return False
    return True
