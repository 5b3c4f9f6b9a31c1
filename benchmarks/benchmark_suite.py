"""
Benchmark Suite

Throughput of every solver configuration: backend (NumPy, Numba) x
streaming scheme (pull, push) x boundary policy (open channel, closed
cavity), reported in MLUPS.
"""

import argparse
import itertools
import time
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbmflow import BoundaryPolicy, LBMSolver, StreamingScheme


BACKENDS = {"numpy": False, "numba": True}


def benchmark_solver(nx, ny, policy, scheme, use_fast, num_steps, warmup_steps=20):
    """
    Benchmark one solver configuration.

    Returns
    -------
    mlups : float
        Million Lattice Updates Per Second
    """
    solver = LBMSolver(nx, ny, policy=policy, scheme=scheme,
                       viscosity=0.05, velocity=0.05, use_fast=use_fast)

    # Warmup (includes JIT compilation)
    solver.run(warmup_steps)

    start = time.perf_counter()
    solver.run(num_steps)
    elapsed = time.perf_counter() - start

    return num_steps * nx * ny / elapsed / 1e6


def run_full_benchmark(grid_sizes=None, num_steps=200, numpy_max_cells=256 * 256):
    """
    Run the benchmark over every configuration and grid size.

    NumPy runs are limited to grids of at most `numpy_max_cells` cells.
    """
    if grid_sizes is None:
        grid_sizes = [
            (64, 64),
            (128, 128),
            (256, 256),
            (512, 512),
        ]

    print("=" * 80)
    print("LBM Performance Benchmark Suite")
    print("=" * 80)
    print(f"Steps: {num_steps}")
    print()

    configs = list(itertools.product(BACKENDS, StreamingScheme, BoundaryPolicy))
    results = {}

    for backend, scheme, policy in configs:
        key = (backend, scheme.value, policy.value)
        results[key] = {}
        print(f"Benchmarking {backend} / {scheme.value} / {policy.value}...")
        print("-" * 40)
        for nx, ny in grid_sizes:
            if backend == "numpy" and nx * ny > numpy_max_cells:
                continue
            mlups = benchmark_solver(nx, ny, policy, scheme, BACKENDS[backend], num_steps)
            results[key][(nx, ny)] = mlups
            print(f"  {nx:4d} x {ny:4d}: {mlups:8.2f} MLUPS")
        print()

    # Summary Table
    print("=" * 80)
    print("SUMMARY: Performance Comparison (MLUPS)")
    print("=" * 80)

    labels = [f"{b}/{s}/{p[:4]}" for b, s, p in results]
    print(f"{'Grid':<12}" + "".join(f"{label:>17}" for label in labels))
    print("-" * 80)

    for nx, ny in grid_sizes:
        row = "".join(
            f"{data[(nx, ny)]:>17.1f}" if (nx, ny) in data else f"{'-':>17}"
            for data in results.values()
        )
        print(f"{nx:4d}x{ny:<4d}    " + row)

    print("=" * 80)

    all_mlups = [
        (mlups, key, grid)
        for key, data in results.items()
        for grid, mlups in data.items()
    ]
    if all_mlups:
        peak_mlups, peak_key, (peak_nx, peak_ny) = max(all_mlups)
        print(f"\nPeak Performance: {peak_mlups:.1f} MLUPS")
        print(f"  Configuration: {' / '.join(peak_key)}")
        print(f"  Grid Size: {peak_nx}x{peak_ny}")
        print(f"  Effective Bandwidth: {compute_memory_bandwidth(peak_mlups):.1f} GB/s")

    print("=" * 80)

    return results


def compute_memory_bandwidth(mlups, bytes_per_site=144):
    """Compute effective memory bandwidth from MLUPS (9 doubles read + written)."""
    return mlups * bytes_per_site / 1000


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="LBM benchmark suite")
    parser.add_argument("--steps", type=int, default=200)
    parser.add_argument("--sizes", type=int, nargs="+", default=None,
                        help="Square grid sizes to benchmark")
    args = parser.parse_args()

    sizes = [(n, n) for n in args.sizes] if args.sizes else None
    run_full_benchmark(grid_sizes=sizes, num_steps=args.steps)
