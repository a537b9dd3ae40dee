"""
Per-particle pipeline stages: position integration, toroidal wrap and
effective mass.

Each stage only touches the rows of its own chunk, so the stages can run
on any partitioning of the population.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from charge_sim2d.core.store import ParticleStore
    from charge_sim2d.core.workers import ChunkExecutor


def wrap_coordinate(value: float, half_extent: float) -> float:
    """Wrap one coordinate into `[-half_extent, half_extent]`, discarding the overshoot."""
    if value > half_extent:
        return -half_extent
    if value < -half_extent:
        return half_extent
    return value


def integrate_positions(store: "ParticleStore", executor: "ChunkExecutor") -> None:
    """Explicit Euler step: position += velocity (dt is already in the velocity)."""
    positions = store.positions
    velocities = store.velocities

    def work(start: int, stop: int) -> None:
        positions[start:stop] += velocities[start:stop]

    executor.run(work, len(store))


def wrap_positions(
    store: "ParticleStore",
    size_x: float,
    size_y: float,
    executor: "ChunkExecutor",
) -> None:
    """
    Toroidal wrap on the x/y plane.

    A coordinate above +S is set to -S and one below -S is set to +S. The z
    coordinate is never modified.
    """
    positions = store.positions
    limits = (np.float32(size_x), np.float32(size_y))

    def work(start: int, stop: int) -> None:
        for axis, s in enumerate(limits):
            col = positions[start:stop, axis]
            over = col > s
            under = col < -s
            col[over] = -s
            col[under] = s

    executor.run(work, len(store))


def update_effective_mass(store: "ParticleStore", executor: "ChunkExecutor") -> None:
    """effective_mass = rest_mass + |velocity|"""
    masses = store.masses
    rest = store.rest_masses
    velocities = store.velocities

    def work(start: int, stop: int) -> None:
        v = velocities[start:stop]
        masses[start:stop] = rest[start:stop] + np.sqrt(np.sum(v * v, axis=1, dtype=np.float32))

    executor.run(work, len(store))
