"""
Benchmark workload for the Sparse Merkle Tree.

This module seeds a pseudo-random generator, fills a tree with keys of
several shapes and measures the size of a compiled proof for one of them:

1. Subkeys: 0xFF 0x00 "subkey" followed by a little-endian u32
2. Uniformly random keys
3. Clustered keys under the 0x8100 prefix
4. Keys under one of the 0x8101..0x8103 prefixes
"""
import logging
import random
import struct
import time
from typing import List, Optional

from pydantic import BaseModel, Field

from sparsetree.core.config import SparseTreeConfig, load_config_from_env
from sparsetree.core.state_merkle import SparseMerkleTree, get_hasher

logger = logging.getLogger(__name__)

SUBKEY_PREFIX = b"\xff\x00subkey"


class BenchmarkResult(BaseModel):
    seed: int = Field(..., description="Seed used for the workload")
    subkey_count: int = Field(..., ge=0, description="Subkeys after deduplication")
    random_key_count: int = Field(..., ge=0, description="Uniformly random keys")
    clustered_key_count: int = Field(..., ge=0, description="Keys under 0x8100")
    multi_prefix_key_count: int = Field(..., ge=0, description="Keys under 0x8101..0x8103")
    root: str = Field(..., description="Final root digest (hex)")
    chosen: int = Field(..., ge=0, description="Index of the proved subkey")
    proof_length: int = Field(..., ge=0, description="Compiled proof size in bytes")
    verified: bool = Field(..., description="Whether the proof verified")
    elapsed_seconds: float = Field(..., ge=0, description="Wall time of the run")


def random_value(rng: random.Random) -> bytes:
    return rng.randbytes(32)


def subkey(rng: random.Random) -> bytes:
    ext_data = rng.getrandbits(32)
    return SUBKEY_PREFIX + struct.pack("<I", ext_data) + b"\x00" * 20


def random_key(rng: random.Random) -> bytes:
    return rng.randbytes(32)


def clustered_key(rng: random.Random) -> bytes:
    return b"\x81\x00" + rng.randbytes(20) + b"\x00" * 10


def multi_prefix_key(rng: random.Random) -> bytes:
    return bytes([0x81, rng.randint(1, 3)]) + rng.randbytes(24) + b"\x00" * 6


def generate_subkeys(rng: random.Random, count: int) -> List[bytes]:
    """Generate subkeys, dropping duplicates while keeping generation order."""
    return list(dict.fromkeys(subkey(rng) for _ in range(count)))


def run_benchmark(
    settings: Optional[SparseTreeConfig] = None, seed: Optional[int] = None
) -> BenchmarkResult:
    """Populate a tree with every key shape and prove one subkey.

    Args:
        settings: Configuration with hasher and key counts (default: from the environment)
        seed: Seed override; falls back to the config, then to the clock

    Returns:
        BenchmarkResult: Counts, root and proof metrics of the run
    """
    settings = settings or load_config_from_env()
    if seed is None:
        seed = settings.bench_seed
    if seed is None:
        seed = time.time_ns() & 0xFFFFFFFFFFFFFFFF
    logger.info(f"Seed: {seed}")

    rng = random.Random(seed)
    started = time.perf_counter()
    tree = SparseMerkleTree(
        hasher=get_hasher(settings.hasher, settings.blake2b_personalization.encode())
    )

    subkeys = generate_subkeys(rng, settings.bench_subkey_count)
    logger.info(f"Deduped subkey count: {len(subkeys)}")
    if not subkeys:
        raise ValueError("Benchmark needs at least one subkey to prove")
    for key in subkeys:
        tree.update(key, random_value(rng))

    shapes = [
        ("type 1", random_key, settings.bench_random_key_count),
        ("type 2", clustered_key, settings.bench_clustered_key_count),
        ("type 3", multi_prefix_key, settings.bench_multi_prefix_key_count),
    ]
    for name, make_key, count in shapes:
        logger.info(f"Generating {count} {name} keys...")
        for _ in range(count):
            key = make_key(rng)
            tree.update(key, random_value(rng))

    chosen = rng.randrange(len(subkeys))
    chosen_key = subkeys[chosen]
    logger.info(f"Chosen: {chosen}")

    proof = tree.merkle_proof([chosen_key])
    compiled = proof.compile([chosen_key])
    verified = compiled.verify(tree.root(), [(chosen_key, tree.get(chosen_key))], tree.hasher)
    logger.info(f"Proof length: {len(compiled)}")

    return BenchmarkResult(
        seed=seed,
        subkey_count=len(subkeys),
        random_key_count=settings.bench_random_key_count,
        clustered_key_count=settings.bench_clustered_key_count,
        multi_prefix_key_count=settings.bench_multi_prefix_key_count,
        root=tree.root().hex(),
        chosen=chosen,
        proof_length=len(compiled),
        verified=verified,
        elapsed_seconds=time.perf_counter() - started,
    )
