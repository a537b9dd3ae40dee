#!/usr/bin/env python3
"""
Performance benchmark for the force stage.

Compares worker / chunk configurations of the vectorized all-pairs force
integrator, and the pure-Python reference for small populations.

Usage:
    python -m charge_sim2d.utils.benchmark [--particles 3000] [--iterations 10]
"""

from __future__ import annotations

import argparse
import os
import random
import sys
import time

import numpy as np

from charge_sim2d.core.species import Species
from charge_sim2d.core.store import Particle, ParticleStore
from charge_sim2d.core.workers import ChunkExecutor
from charge_sim2d.physics.forces import ForceIntegrator, compute_semi_forces_direct

PYTHON_REFERENCE_LIMIT = 400


def generate_store(n: int, seed: int = 42, size: float = 400.0) -> ParticleStore:
    """Random population cycling through the reference species."""
    rng = random.Random(seed)
    particles = [
        Particle(
            Species.ALL[i % len(Species.ALL)],
            rng.uniform(-size, size),
            rng.uniform(-size, size),
            rng.uniform(-size, size),
        )
        for i in range(n)
    ]
    return ParticleStore.from_particles(particles)


def _mean_std_ms(times: list[float]) -> tuple[float, float]:
    mean = sum(times) / len(times)
    std = (sum((t - mean) ** 2 for t in times) / len(times)) ** 0.5
    return mean * 1000.0, std * 1000.0


def benchmark_integrator(
    store: ParticleStore,
    *,
    workers: int,
    chunk_size: int,
    tile_size: int = 1024,
    iterations: int = 10,
    dt: float = 1.0 / 60.0,
) -> tuple[float, float]:
    """Benchmark ForceIntegrator.apply on a copy of `store`."""
    work = store.copy()
    times = []
    with ChunkExecutor(workers=workers, chunk_size=chunk_size) as executor:
        integrator = ForceIntegrator(executor, tile_size=tile_size)
        for _ in range(iterations):
            t0 = time.perf_counter()
            integrator.apply(work, dt)
            times.append(time.perf_counter() - t0)
    return _mean_std_ms(times)


def benchmark_python_reference(store: ParticleStore, iterations: int = 1) -> tuple[float, float] | None:
    """Benchmark the pure-Python O(N²) reference (skipped for large N)."""
    if len(store) > PYTHON_REFERENCE_LIMIT:
        return None
    positions = [tuple(float(c) for c in row) for row in store.positions]
    charges = [float(q) for q in store.charges]
    times = []
    for _ in range(iterations):
        t0 = time.perf_counter()
        compute_semi_forces_direct(positions, charges)
        times.append(time.perf_counter() - t0)
    return _mean_std_ms(times)


def run_benchmark(n_particles: int, iterations: int) -> dict[str, float]:
    """Run full benchmark suite."""
    print(f"\n{'='*60}")
    print(f"Benchmark: {n_particles} particles, {iterations} iterations")
    print(f"{'='*60}")

    print("Generating particles...", end=" ", flush=True)
    store = generate_store(n_particles)
    print("done")

    cores = os.cpu_count() or 1
    configs = [(1, n_particles or 1), (1, 256), (cores, 256), (cores, 64)]
    results: dict[str, float] = {}

    for workers, chunk in configs:
        label = f"workers={workers} chunk={chunk}"
        print(f"{label}...", end=" ", flush=True)
        mean_ms, std_ms = benchmark_integrator(store, workers=workers, chunk_size=chunk, iterations=iterations)
        print(f"{mean_ms:.2f} ± {std_ms:.2f} ms")
        results[label] = mean_ms

    print("Python reference...", end=" ", flush=True)
    ref = benchmark_python_reference(store)
    if ref is not None:
        print(f"{ref[0]:.2f} ± {ref[1]:.2f} ms")
        results["python_reference"] = ref[0]
    else:
        print(f"skipped (N > {PYTHON_REFERENCE_LIMIT})")

    print(f"\n{'='*60}")
    print("Summary:")
    base = results.get(f"workers=1 chunk={n_particles or 1}")
    for label, ms in results.items():
        speedup = (base / ms) if base and ms > 0 else 1.0
        print(f"  {label}: {ms:.2f} ms ({speedup:.1f}x vs single chunk)")

    return results


def main():
    parser = argparse.ArgumentParser(description="Benchmark the all-pairs force stage")
    parser.add_argument("--particles", "-n", type=int, default=3000, help="Number of particles")
    parser.add_argument("--iterations", "-i", type=int, default=10, help="Benchmark iterations")
    parser.add_argument("--sweep", action="store_true", help="Run sweep over particle counts")
    args = parser.parse_args()

    print("Charge sim 2D force benchmark")
    print(f"Platform: {sys.platform}")
    print(f"NumPy: {np.__version__}")
    print(f"CPU cores: {os.cpu_count()}")

    if args.sweep:
        for n in [100, 500, 1000, 3000, 6000]:
            run_benchmark(n, args.iterations)
    else:
        run_benchmark(args.particles, args.iterations)


if __name__ == "__main__":
    main()
