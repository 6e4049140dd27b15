"""
Proof compiler for the Sparse Merkle Tree.

Turns a raw ``MerkleProof`` into a single instruction stream that rebuilds
the root from the queried leaves. Keys are replayed in sorted order on a
stack of tracked subtrees; paths shared by several keys are climbed once.

Instruction set:
    LEAF  (0x4C)                push the next claimed leaf at depth 256
    PROOF (0x50) + 32 bytes     merge the top with a sibling digest
    ZEROS (0x4F) + 1 byte n     merge the top with n empty siblings (0 = 256)
    HASH  (0x48)                merge the two topmost tracked subtrees
"""

import logging
from typing import Dict, List, Sequence, Tuple

from sparsetree.core.models.proof import CompiledMerkleProof, MerkleProof
from sparsetree.core.state_merkle.errors import MalformedProofError
from sparsetree.core.state_merkle.h256 import (
    TREE_HEIGHT,
    H256Like,
    common_prefix_bits,
    path_prefix,
    to_h256,
    to_path,
)

logger = logging.getLogger(__name__)

OP_LEAF = 0x4C
OP_PROOF = 0x50
OP_ZEROS = 0x4F
OP_HASH = 0x48


def _emit_zeros(program: bytearray, count: int) -> None:
    while count > 0:
        run = min(count, TREE_HEIGHT)
        program.append(OP_ZEROS)
        program.append(run % TREE_HEIGHT)
        count -= run


def compile_proof(proof: MerkleProof, keys: Sequence[H256Like]) -> CompiledMerkleProof:
    """Compile a raw proof for the keys it was generated for.

    Args:
        proof: Raw proof from ``SparseMerkleTree.merkle_proof``
        keys: The proof's keys, in any order

    Returns:
        CompiledMerkleProof: Deterministic compiled proof
    """
    ordered = sorted({to_h256(key) for key in keys})
    if ordered != list(proof.keys):
        raise MalformedProofError(
            f"Compile keys do not match the {len(proof.keys)} keys of the proof"
        )

    siblings: Dict[Tuple[int, int], bytes] = {
        sibling.position(): sibling.digest for sibling in proof.siblings
    }
    paths = [to_path(key) for key in ordered]

    program = bytearray()
    # Each entry is [depth, path] of a tracked subtree
    stack: List[List[int]] = []
    for index, path in enumerate(paths):
        program.append(OP_LEAF)
        stack.append([TREE_HEIGHT, path])

        # Stop just below the branch shared with the next key
        if index + 1 < len(paths):
            target = common_prefix_bits(path, paths[index + 1]) + 1
        else:
            target = 0

        zeros = 0
        while True:
            depth, top_path = stack[-1]
            if len(stack) > 1 and stack[-2][0] == depth:
                _emit_zeros(program, zeros)
                zeros = 0
                program.append(OP_HASH)
                stack.pop()
                stack[-1][0] = depth - 1
                continue
            if depth == target:
                break
            sibling = siblings.get((depth, path_prefix(top_path, depth) ^ 1))
            if sibling is None:
                zeros += 1
            else:
                _emit_zeros(program, zeros)
                zeros = 0
                program.append(OP_PROOF)
                program += sibling
            stack[-1][0] = depth - 1
        _emit_zeros(program, zeros)

    logger.debug(f"Compiled proof for {len(ordered)} keys into {len(program)} bytes")
    return CompiledMerkleProof(data=bytes(program))
