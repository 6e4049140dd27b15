"""
Content-addressed node store for the Sparse Merkle Tree.

Nodes are keyed by their digest and never mutated, so any number of roots
can share subtrees. Empty subtrees are the zero digest and are never stored.
"""

import logging
from typing import Dict, Iterator, Optional

from sparsetree.core.models.node import BranchNode, LeafNode, Node
from sparsetree.core.state_merkle.errors import NodeNotFoundError
from sparsetree.core.state_merkle.h256 import ZERO_H256
from sparsetree.core.state_merkle.hasher import Hasher

logger = logging.getLogger(__name__)


class NodeStore:
    """In-memory digest -> node mapping with no eviction."""

    def __init__(self, hasher: Hasher):
        """Initialize an empty store.

        Args:
            hasher: Hasher used to address inserted nodes
        """
        self.hasher = hasher
        self._nodes: Dict[bytes, Node] = {}

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, digest: bytes) -> bool:
        return digest in self._nodes

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._nodes)

    def insert(self, node: Node) -> bytes:
        """Store a node under its digest.

        Inserting identical content twice is a no-op that returns the same
        digest.

        Args:
            node: Leaf or branch node

        Returns:
            bytes: Digest of the node
        """
        digest = node.digest(self.hasher)
        if digest != ZERO_H256:
            self._nodes.setdefault(digest, node)
        return digest

    def get(self, digest: bytes) -> Optional[Node]:
        """Get the node stored under a digest, or None."""
        return self._nodes.get(digest)

    def get_branch(self, digest: bytes) -> BranchNode:
        """Get a branch node, raising if the store does not hold one.

        Args:
            digest: Branch digest

        Returns:
            BranchNode: The branch
        """
        node = self._nodes.get(digest)
        if not isinstance(node, BranchNode):
            logger.error(f"Branch {digest.hex()} missing from node store")
            raise NodeNotFoundError(f"Branch not found: {digest.hex()}")
        return node

    def get_leaf(self, digest: bytes) -> LeafNode:
        """Get a leaf node, raising if the store does not hold one.

        Args:
            digest: Leaf digest

        Returns:
            LeafNode: The leaf
        """
        node = self._nodes.get(digest)
        if not isinstance(node, LeafNode):
            logger.error(f"Leaf {digest.hex()} missing from node store")
            raise NodeNotFoundError(f"Leaf not found: {digest.hex()}")
        return node
