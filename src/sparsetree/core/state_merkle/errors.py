"""
Exceptions raised by the Sparse Merkle Tree engine.
"""


class SparseMerkleError(Exception):
    """Base exception for all Sparse Merkle Tree errors."""

    pass


class InvalidKeyError(SparseMerkleError, ValueError):
    """Exception raised when a key is not a 256-bit value."""

    pass


class InvalidValueError(SparseMerkleError, ValueError):
    """Exception raised when a leaf value is not a 256-bit value."""

    pass


class InvalidDigestError(SparseMerkleError, ValueError):
    """Exception raised when a digest (root or sibling) is not 256 bits wide."""

    pass


class StoreCorruptionError(SparseMerkleError):
    """Exception raised when the node store lost a node a root depends on.

    This is never an input error: the store is expected to hold every node
    reachable from any root it has produced.
    """

    pass


class NodeNotFoundError(StoreCorruptionError):
    """Exception raised when a digest has no matching node in the store."""

    pass


class KeyNotTrackedError(StoreCorruptionError):
    """Exception raised when a proof walk hits a missing node."""

    pass


class MalformedProofError(SparseMerkleError):
    """Exception raised when a proof is structurally inconsistent."""

    pass
