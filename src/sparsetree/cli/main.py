import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import dotenv
import typer

from sparsetree.bench import run_benchmark
from sparsetree.core.config import SparseTreeConfig, load_config_from_env
from sparsetree.core.models.proof import CompiledMerkleProof
from sparsetree.core.state_merkle import (
    SparseMerkleError,
    SparseMerkleTree,
    get_hasher,
    verify as verify_proof,
)

app = typer.Typer(help="Sparse Merkle Tree tools: benchmark, prove and verify.")


def load_settings() -> SparseTreeConfig:
    """Load settings from a .env file and the environment, and set up logging."""
    dotenv.load_dotenv()
    settings = load_config_from_env()
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    return settings


def parse_pair(text: str) -> Tuple[str, str]:
    if "=" not in text:
        raise typer.BadParameter(f"Expected KEY=VALUE, got {text!r}")
    key, value = text.split("=", 1)
    return key.strip(), value.strip()


@app.command()
def bench(
    seed: Optional[int] = typer.Option(None, help="Workload seed (default: config, then clock)"),
    subkeys: Optional[int] = typer.Option(None, help="Number of subkeys to generate"),
    keys: Optional[int] = typer.Option(None, help="Number of keys of each other shape"),
):
    """Fill a tree with the benchmark workload and prove one subkey."""
    settings = load_settings()
    if subkeys is not None:
        settings.bench_subkey_count = subkeys
    if keys is not None:
        settings.bench_random_key_count = keys
        settings.bench_clustered_key_count = keys
        settings.bench_multi_prefix_key_count = keys

    result = run_benchmark(settings, seed=seed)
    typer.echo(f"Seed: {result.seed}")
    typer.echo(
        f"Subkey count: {result.subkey_count}, type 1 SMT key count: {result.random_key_count}, "
        f"type 2 SMT key count: {result.clustered_key_count}, "
        f"type 3 SMT key count: {result.multi_prefix_key_count}"
    )
    typer.echo(f"Root: {result.root}")
    typer.echo(f"Chosen: {result.chosen}")
    typer.echo(f"Proof length: {result.proof_length}")
    typer.echo(f"Elapsed: {result.elapsed_seconds:.2f}s")
    if not result.verified:
        typer.echo("❌ Proof failed to verify", err=True)
        raise typer.Exit(code=1)
    typer.echo("✅ Proof verified")


@app.command()
def prove(
    pairs_file: Path = typer.Argument(..., help="JSON object mapping key hex to value hex"),
    key: List[str] = typer.Option(..., "--key", "-k", help="Key to prove (repeatable)"),
):
    """Build a tree from a JSON file and print a compiled proof for some keys."""
    settings = load_settings()
    try:
        with open(pairs_file) as f:
            pairs = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        typer.echo(f"❌ Cannot read pairs file: {e}", err=True)
        raise typer.Exit(code=2)
    if not isinstance(pairs, dict):
        typer.echo("❌ Pairs file must hold a JSON object of key hex to value hex", err=True)
        raise typer.Exit(code=2)

    try:
        tree = SparseMerkleTree(
            hasher=get_hasher(settings.hasher, settings.blake2b_personalization.encode())
        )
        tree.update_all(pairs.items())
        compiled = tree.merkle_proof(key).compile(key)
    except SparseMerkleError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=2)

    typer.echo(json.dumps({
        "root": tree.root().hex(),
        "proof": compiled.to_hex(),
        "proof_length": len(compiled),
        "leaves": {k: tree.get(k).hex() for k in key},
    }, indent=2))


@app.command()
def verify(
    root: str = typer.Option(..., help="Claimed root digest (hex)"),
    proof: str = typer.Option(..., help="Compiled proof (hex)"),
    pair: List[str] = typer.Option([], "--pair", "-p", help="Claimed KEY=VALUE (repeatable)"),
):
    """Verify a compiled proof against a root and claimed pairs."""
    settings = load_settings()
    hasher = get_hasher(settings.hasher, settings.blake2b_personalization.encode())
    try:
        compiled = CompiledMerkleProof.from_hex(proof)
        accepted = verify_proof(compiled, root, [parse_pair(p) for p in pair], hasher)
    except (SparseMerkleError, ValueError) as e:
        typer.echo(f"❌ Malformed input: {e}", err=True)
        raise typer.Exit(code=2)

    if not accepted:
        typer.echo("❌ Proof rejected")
        raise typer.Exit(code=1)
    typer.echo("✅ Proof verified")


if __name__ == "__main__":
    app()
