"""
Pairwise Coulomb-like force integration.

Every particle interacts with every other particle each tick (O(N²)). The
kernel is a softened Coulomb law:

    semi_force_i = Σ_j  normalize(t_i - t_j) * q_j / (|t_i - t_j|² + 1)

and the velocity update is

    v_i += semi_force_i * (q_i / m_i) * dt

Pairs closer than float32 machine epsilon (the self pair included)
contribute nothing.

Example:
    >>> from charge_sim2d.physics.forces import ForceIntegrator
    >>> ForceIntegrator(executor).apply(store, dt=1.0 / 60.0)
"""

from __future__ import annotations

import math
import time
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from charge_sim2d.core.store import ForceSnapshot, ParticleStore
    from charge_sim2d.core.workers import ChunkExecutor

EPSILON = float(np.finfo(np.float32).eps)


def coulomb_semi_force_pair(
    xi: float, yi: float, zi: float,
    xj: float, yj: float, zj: float,
    qj: float,
    eps: float = EPSILON,
) -> tuple[float, float, float]:
    """
    Contribution of particle j to the semi force on particle i.

    Args:
        xi, yi, zi: Position of particle i
        xj, yj, zj: Position of particle j
        qj: Charge of particle j in elementary charges
        eps: Squared distance at or below which the pair is ignored

    Returns:
        (fx, fy, fz) contribution, zero for coincident pairs
    """
    dx = xi - xj
    dy = yi - yj
    dz = zi - zj
    dist2 = dx*dx + dy*dy + dz*dz
    if dist2 <= eps:
        return 0.0, 0.0, 0.0

    f = qj / (math.sqrt(dist2) * (dist2 + 1.0))
    return dx * f, dy * f, dz * f


def compute_semi_forces_direct(
    positions: list[tuple[float, float, float]],
    charges: list[float],
) -> list[tuple[float, float, float]]:
    """
    Semi force on every particle by direct summation (pure Python).

    This is the reference implementation for testing.
    """
    n = len(positions)
    if len(charges) != n:
        raise ValueError("positions/charges length mismatch")

    out: list[tuple[float, float, float]] = []
    for i in range(n):
        xi, yi, zi = positions[i]
        fx = fy = fz = 0.0
        for j in range(n):
            xj, yj, zj = positions[j]
            cx, cy, cz = coulomb_semi_force_pair(xi, yi, zi, xj, yj, zj, charges[j])
            fx += cx
            fy += cy
            fz += cz
        out.append((fx, fy, fz))
    return out


def compute_semi_forces_chunk(
    snapshot: "ForceSnapshot",
    start: int,
    stop: int,
    tile_size: int = 1024,
) -> np.ndarray:
    """
    Semi forces for rows `[start, stop)` of the snapshot (NumPy, float32).

    The j axis is processed in tiles of `tile_size` to bound the size of
    the temporary (rows x tile x 3) arrays.

    Returns:
        (stop - start, 3) float32 array
    """
    pos = snapshot.positions
    charges = snapshot.charges
    n = pos.shape[0]
    tile = max(1, int(tile_size))
    eps32 = np.float32(EPSILON)
    one = np.float32(1.0)

    pi = pos[start:stop]
    acc = np.zeros((stop - start, 3), dtype=np.float32)

    for j0 in range(0, n, tile):
        j1 = min(n, j0 + tile)
        d = pi[:, None, :] - pos[None, j0:j1, :]
        r2 = np.sum(d * d, axis=2, dtype=np.float32)
        denom = np.sqrt(r2) * (r2 + one)

        f = np.zeros_like(r2)
        np.divide(charges[None, j0:j1], denom, out=f, where=r2 > eps32)
        acc += np.sum(d * f[:, :, None], axis=1, dtype=np.float32)

    return acc


class ForceIntegrator:
    """
    Velocity update from the all-pairs force sum.

    Rows are partitioned across the executor. Each worker reads the shared
    snapshot and writes only its own slice of the velocity array.

    Attributes:
        executor: Fork-join executor used to spread rows over workers
        tile_size: j-axis tile size for the vectorized kernel
        last_force_ms: Wall time of the last `apply` call
    """

    def __init__(self, executor: "ChunkExecutor", tile_size: int = 1024) -> None:
        if tile_size <= 0:
            raise ValueError("tile_size must be > 0")
        self.executor = executor
        self.tile_size = int(tile_size)
        self.last_force_ms: float | None = None

    def compute_impulses(
        self,
        snapshot: "ForceSnapshot",
        masses: np.ndarray,
        dt: float,
    ) -> np.ndarray:
        """
        Impulse (velocity change) for every particle, without applying it.

        Args:
            snapshot: Positions and charges at the start of the tick
            masses: Effective masses, shape (N,)
            dt: Elapsed simulated time of the tick

        Returns:
            (N, 3) float32 array
        """
        n = len(snapshot)
        if masses.shape[0] != n:
            raise ValueError("snapshot/masses length mismatch")
        out = np.zeros((n, 3), dtype=np.float32)

        def work(start: int, stop: int) -> None:
            out[start:stop] = self._impulse_rows(snapshot, masses, dt, start, stop)

        self.executor.run(work, n)
        return out

    def apply(self, store: "ParticleStore", dt: float) -> None:
        """Add this tick's impulse to every particle's velocity."""
        t0 = time.perf_counter()
        snapshot = store.snapshot()
        masses = store.masses
        velocities = store.velocities

        def work(start: int, stop: int) -> None:
            velocities[start:stop] += self._impulse_rows(snapshot, masses, dt, start, stop)

        self.executor.run(work, len(snapshot))
        self.last_force_ms = (time.perf_counter() - t0) * 1000.0

    def _impulse_rows(
        self,
        snapshot: "ForceSnapshot",
        masses: np.ndarray,
        dt: float,
        start: int,
        stop: int,
    ) -> np.ndarray:
        semi = compute_semi_forces_chunk(snapshot, start, stop, self.tile_size)
        scale = snapshot.charges[start:stop] / masses[start:stop] * np.float32(dt)
        return semi * scale[:, None]
