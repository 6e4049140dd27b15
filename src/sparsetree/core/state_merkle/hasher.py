"""
Hash functions for the Sparse Merkle Tree.

Leaf and branch preimages carry distinct one-byte prefixes (0x00 for
leaves, 0x01 for branches, as in RFC 6962) so a leaf digest can never be
mistaken for a branch digest. Empty subtrees hash to the zero digest.
"""

import hashlib
from typing import Optional

from sparsetree.core.config import load_config_from_env
from sparsetree.core.state_merkle.h256 import ZERO_H256

LEAF_PREFIX = b"\x00"
BRANCH_PREFIX = b"\x01"

DEFAULT_PERSONALIZATION = b"ckb-default-hash"


class Hasher:
    """Base hasher. Subclasses only provide the raw compression function."""

    name = "base"

    def digest(self, data: bytes) -> bytes:
        raise NotImplementedError

    def hash_leaf(self, key: bytes, value: bytes) -> bytes:
        """Hash a leaf's key and value.

        Args:
            key: 32-byte key
            value: 32-byte value

        Returns:
            bytes: Leaf digest, or the zero digest for the zero value
        """
        if value == ZERO_H256:
            return ZERO_H256
        return self.digest(LEAF_PREFIX + key + value)

    def hash_branch(self, left: bytes, right: bytes) -> bytes:
        """Hash two child digests to create a parent digest.

        Args:
            left: Left child digest
            right: Right child digest

        Returns:
            bytes: Parent digest, or the zero digest if both children are empty
        """
        if left == ZERO_H256 and right == ZERO_H256:
            return ZERO_H256
        return self.digest(BRANCH_PREFIX + left + right)

    def __eq__(self, other: object) -> bool:
        # Equal hashers produce equal digests for every input
        if type(self) is not type(other):
            return NotImplemented
        return vars(self) == vars(other)

    def __hash__(self) -> int:
        return hash((type(self), tuple(sorted(vars(self).items()))))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Blake2bHasher(Hasher):
    """BLAKE2b with a 32-byte digest and a 16-byte personalization."""

    name = "blake2b"

    def __init__(self, personalization: bytes = DEFAULT_PERSONALIZATION):
        if len(personalization) > hashlib.blake2b.PERSON_SIZE:
            raise ValueError(
                f"Personalization must be at most {hashlib.blake2b.PERSON_SIZE} bytes"
            )
        self.personalization = personalization

    def digest(self, data: bytes) -> bytes:
        return hashlib.blake2b(
            data, digest_size=32, person=self.personalization
        ).digest()

    def __repr__(self) -> str:
        return f"Blake2bHasher(personalization={self.personalization!r})"


class Sha256Hasher(Hasher):
    """Plain SHA-256."""

    name = "sha256"

    def digest(self, data: bytes) -> bytes:
        return hashlib.sha256(data).digest()


def get_hasher(name: str, personalization: Optional[bytes] = None) -> Hasher:
    """Build a hasher by name.

    Args:
        name: "blake2b" or "sha256"
        personalization: Optional BLAKE2b personalization

    Returns:
        Hasher: The hasher instance
    """
    if name == Blake2bHasher.name:
        if personalization is None:
            return Blake2bHasher()
        return Blake2bHasher(personalization)
    if name == Sha256Hasher.name:
        return Sha256Hasher()
    raise ValueError(f"Unknown hasher: {name}")


def default_hasher() -> Hasher:
    """Build the hasher selected by the environment (SPARSETREE_HASHER)."""
    settings = load_config_from_env()
    return get_hasher(settings.hasher, settings.blake2b_personalization.encode())
