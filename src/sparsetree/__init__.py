"""
sparsetree: a 256-bit Sparse Merkle Tree with compact multi-key proofs.
"""
__version__ = "0.1.0"
