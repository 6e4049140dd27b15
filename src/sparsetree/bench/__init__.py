"""
Benchmark workload for the Sparse Merkle Tree.
"""
from sparsetree.bench.workload import BenchmarkResult, run_benchmark

__all__ = ["BenchmarkResult", "run_benchmark"]
