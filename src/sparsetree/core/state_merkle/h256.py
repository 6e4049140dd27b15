"""
Helpers for 256-bit keys, values and digests.

Keys, values and digests are all 32-byte ``bytes`` objects. Bit 0 of a key is
the most significant bit of its first byte and selects the child at depth 1.
"""

from typing import Type, Union

from sparsetree.core.state_merkle.errors import InvalidKeyError

# Tree height, which is also the depth of every leaf
TREE_HEIGHT = 256
H256_SIZE = 32

# Zero value ("absent") and zero digest ("empty subtree")
ZERO_H256 = b"\x00" * H256_SIZE

H256Like = Union[bytes, bytearray, str]


def to_h256(
    data: H256Like, error: Type[Exception] = InvalidKeyError, what: str = "key"
) -> bytes:
    """Coerce bytes or a hex string into a 32-byte value.

    Args:
        data: 32 raw bytes, or 64 hex characters with an optional 0x prefix
        error: Exception class raised for malformed input
        what: Name of the value used in the error message

    Returns:
        bytes: The 32-byte value
    """
    if isinstance(data, (bytes, bytearray)):
        raw = bytes(data)
    elif isinstance(data, str):
        text = data[2:] if data.startswith(("0x", "0X")) else data
        try:
            raw = bytes.fromhex(text)
        except ValueError:
            raise error(f"Invalid {what}: not a hex string: {data!r}") from None
    else:
        raise error(f"Invalid {what}: expected bytes or hex string, got {type(data).__name__}")

    if len(raw) != H256_SIZE:
        raise error(f"Invalid {what}: expected {H256_SIZE} bytes, got {len(raw)}")
    return raw


def to_path(key: bytes) -> int:
    """Convert a key to its integer path (most significant bit first)."""
    return int.from_bytes(key, "big")


def path_bit(path: int, depth: int) -> int:
    """Return the bit that selects the node at ``depth`` (1..256) on ``path``."""
    return (path >> (TREE_HEIGHT - depth)) & 1


def path_prefix(path: int, depth: int) -> int:
    """Return the position of the node at ``depth`` on ``path``.

    The position is the top ``depth`` bits of the path; the root is 0.
    """
    return path >> (TREE_HEIGHT - depth)


def common_prefix_bits(a: int, b: int) -> int:
    """Number of leading bits two paths have in common."""
    return TREE_HEIGHT - (a ^ b).bit_length()
