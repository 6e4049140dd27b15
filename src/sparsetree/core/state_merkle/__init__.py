"""
Sparse Merkle Tree package: tree, proofs, compiler and verifier.
"""
from sparsetree.core.models.proof import CompiledMerkleProof, MerkleProof, ProofSibling
from sparsetree.core.state_merkle.compiler import compile_proof
from sparsetree.core.state_merkle.errors import (
    InvalidDigestError,
    InvalidKeyError,
    InvalidValueError,
    KeyNotTrackedError,
    MalformedProofError,
    NodeNotFoundError,
    SparseMerkleError,
    StoreCorruptionError,
)
from sparsetree.core.state_merkle.h256 import TREE_HEIGHT, ZERO_H256
from sparsetree.core.state_merkle.hasher import (
    Blake2bHasher,
    Hasher,
    Sha256Hasher,
    default_hasher,
    get_hasher,
)
from sparsetree.core.state_merkle.smt import SparseMerkleTree
from sparsetree.core.state_merkle.store import NodeStore
from sparsetree.core.state_merkle.verifier import compute_root, verify

__all__ = [
    "SparseMerkleTree",
    "NodeStore",
    "MerkleProof",
    "ProofSibling",
    "CompiledMerkleProof",
    "compile_proof",
    "compute_root",
    "verify",
    "Hasher",
    "Blake2bHasher",
    "Sha256Hasher",
    "default_hasher",
    "get_hasher",
    "TREE_HEIGHT",
    "ZERO_H256",
    "SparseMerkleError",
    "InvalidKeyError",
    "InvalidValueError",
    "InvalidDigestError",
    "StoreCorruptionError",
    "NodeNotFoundError",
    "KeyNotTrackedError",
    "MalformedProofError",
]
