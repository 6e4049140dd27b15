"""
Sparse Merkle Tree implementation over a 256-bit key space.

This module provides a Sparse Merkle Tree (SMT) that maps 256-bit keys to
256-bit values, produces a single root digest and generates proofs of
inclusion or exclusion for any set of keys.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sparsetree.core.models.node import BranchNode, LeafNode
from sparsetree.core.models.proof import MerkleProof, ProofSibling
from sparsetree.core.state_merkle.errors import (
    InvalidDigestError,
    InvalidValueError,
    KeyNotTrackedError,
    NodeNotFoundError,
)
from sparsetree.core.state_merkle.h256 import (
    TREE_HEIGHT,
    ZERO_H256,
    H256Like,
    path_bit,
    path_prefix,
    to_h256,
    to_path,
)
from sparsetree.core.state_merkle.hasher import Hasher, default_hasher
from sparsetree.core.state_merkle.store import NodeStore

logger = logging.getLogger(__name__)


class SparseMerkleTree:
    """
    A Sparse Merkle Tree of height 256.

    The tree is a view over a content-addressed node store:
    - Keys are 32-byte values; each bit picks left (0) or right (1)
    - Values are 32-byte values; the zero value means "absent"

    Unpopulated subtrees are never materialized: they are the zero digest.
    Updates only add nodes, so every root the tree has had stays readable
    from the same store.
    """

    def __init__(
        self,
        hasher: Optional[Hasher] = None,
        store: Optional[NodeStore] = None,
        root: H256Like = ZERO_H256,
    ):
        """Initialize a tree.

        Args:
            hasher: Hasher for leaves and branches (default from config)
            store: Node store to share (default: a new empty store)
            root: Root to start from (default: the empty tree)
        """
        if store is None:
            store = NodeStore(hasher or default_hasher())
        elif hasher is not None and hasher != store.hasher:
            raise ValueError("Hasher does not match the store's hasher")
        self._store = store
        self._root = to_h256(root, InvalidDigestError, "root")

    @property
    def store(self) -> NodeStore:
        return self._store

    @property
    def hasher(self) -> Hasher:
        return self._store.hasher

    def root(self) -> bytes:
        """Get the current root digest of the tree.

        Returns:
            bytes: Root digest
        """
        return self._root

    def is_empty(self) -> bool:
        return self._root == ZERO_H256

    def checkout(self, root: H256Like) -> "SparseMerkleTree":
        """Get a view of the tree at another root sharing the same store.

        Args:
            root: A root previously produced by this store

        Returns:
            SparseMerkleTree: Tree positioned at ``root``
        """
        return SparseMerkleTree(store=self._store, root=root)

    def _walk(self, path: int) -> Tuple[List[bytes], bytes]:
        """Walk from the root to the leaf slot of a path.

        Args:
            path: Integer path of the key

        Returns:
            Tuple[List[bytes], bytes]: Siblings indexed by depth - 1, and the
            digest found in the leaf slot
        """
        siblings: List[bytes] = []
        node = self._root
        for depth in range(1, TREE_HEIGHT + 1):
            if node == ZERO_H256:
                # Everything below an empty subtree is empty
                siblings.extend([ZERO_H256] * (TREE_HEIGHT + 1 - depth))
                break
            branch = self._store.get_branch(node)
            bit = path_bit(path, depth)
            siblings.append(branch.sibling(bit))
            node = branch.child(bit)
        return siblings, node

    def update(self, key: H256Like, value: H256Like) -> bytes:
        """Set the value of a key.

        Setting a key to the zero value removes it.

        Args:
            key: 32-byte key
            value: 32-byte value

        Returns:
            bytes: The new root digest
        """
        key = to_h256(key)
        value = to_h256(value, InvalidValueError, "value")
        path = to_path(key)

        # Read the whole path first so a store failure leaves the tree unchanged
        siblings, _ = self._walk(path)

        node = self._store.insert(LeafNode(key=key, value=value))
        for depth in range(TREE_HEIGHT, 0, -1):
            sibling = siblings[depth - 1]
            if path_bit(path, depth):
                branch = BranchNode(left=sibling, right=node)
            else:
                branch = BranchNode(left=node, right=sibling)
            node = self._store.insert(branch)

        self._root = node
        return node

    def update_all(self, pairs: Iterable[Tuple[H256Like, H256Like]]) -> bytes:
        """Apply several updates in order; later writes to a key win.

        Every pair is validated before the first update is applied.

        Args:
            pairs: (key, value) pairs

        Returns:
            bytes: The new root digest
        """
        checked = [
            (to_h256(key), to_h256(value, InvalidValueError, "value"))
            for key, value in pairs
        ]
        for key, value in checked:
            self.update(key, value)
        return self._root

    def get(self, key: H256Like) -> bytes:
        """Get the value of a key.

        Args:
            key: 32-byte key

        Returns:
            bytes: The value, or the zero value if the key is absent
        """
        key = to_h256(key)
        _, leaf = self._walk(to_path(key))
        if leaf == ZERO_H256:
            return ZERO_H256
        return self._store.get_leaf(leaf).value

    def merkle_proof(self, keys: Iterable[H256Like]) -> MerkleProof:
        """Generate a proof for a set of keys.

        A sibling is left out of the proof when it is empty or when it sits
        on the path of another queried key, since the verifier derives both.

        Args:
            keys: Keys to prove; absent keys yield exclusion proofs

        Returns:
            MerkleProof: Sorted keys and the sibling digests they need
        """
        ordered = sorted({to_h256(key) for key in keys})
        paths = [to_path(key) for key in ordered]

        # Every node position on a queried path
        tracked: Set[Tuple[int, int]] = {
            (depth, path_prefix(path, depth))
            for path in paths
            for depth in range(TREE_HEIGHT + 1)
        }

        siblings: Dict[Tuple[int, int], bytes] = {}
        for key, path in zip(ordered, paths):
            node = self._root
            for depth in range(1, TREE_HEIGHT + 1):
                if node == ZERO_H256:
                    break
                try:
                    branch = self._store.get_branch(node)
                except NodeNotFoundError as e:
                    raise KeyNotTrackedError(
                        f"Missing node at depth {depth - 1} on the path of {key.hex()}"
                    ) from e
                bit = path_bit(path, depth)
                sibling = branch.sibling(bit)
                position = (depth, path_prefix(path, depth) ^ 1)
                if sibling != ZERO_H256 and position not in tracked:
                    siblings[position] = sibling
                node = branch.child(bit)

        proof = MerkleProof(
            keys=ordered,
            siblings=[
                ProofSibling(depth=depth, path=position, digest=digest)
                for (depth, position), digest in sorted(
                    siblings.items(), key=lambda item: (-item[0][0], item[0][1])
                )
            ],
        )
        logger.debug(
            f"Generated proof for {len(ordered)} keys with {len(proof.siblings)} siblings"
        )
        return proof
