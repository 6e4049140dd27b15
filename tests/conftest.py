"""
Pytest configuration for sparsetree tests.

This file helps pytest find and run tests correctly by setting up the Python path
and shared fixtures.
"""

import os
import sys

import pytest

# Add the src directory to the Python path to help with imports
src_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if src_root not in sys.path:
    sys.path.insert(0, src_root)

from sparsetree.core.state_merkle import Blake2bHasher, SparseMerkleTree  # noqa: E402


def make_key(n: int) -> bytes:
    """Build a 32-byte key from an integer."""
    return n.to_bytes(32, "big")


def make_value(n: int) -> bytes:
    """Build a non-zero 32-byte value from an integer."""
    return (n + 1).to_bytes(32, "big")


@pytest.fixture
def tree():
    """An empty tree using the default BLAKE2b hasher."""
    return SparseMerkleTree(hasher=Blake2bHasher())
