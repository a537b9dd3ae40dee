from __future__ import annotations

import random
import sys
import time
import warnings

import numpy as np

from charge_sim2d.core.init_conditions import create_store
from charge_sim2d.core.store import ParticleStore
from charge_sim2d.core.workers import ChunkExecutor
from charge_sim2d.errors import SimulationDiverged
from charge_sim2d.params import SimParams
from charge_sim2d.physics.forces import ForceIntegrator
from charge_sim2d.physics.motion import integrate_positions, update_effective_mass, wrap_positions

STAGES = ("force", "motion", "wrap", "mass")


class ParticlePipeline:
    def __init__(self, params: SimParams, store: ParticleStore | None = None) -> None:
        self.params = params
        # bounds are fixed for the lifetime of the pipeline
        self.size_x = float(params.size_x)
        self.size_y = float(params.size_y)
        self.executor = ChunkExecutor(workers=params.resolved_workers(), chunk_size=params.chunk_size)
        self.forces = ForceIntegrator(self.executor, tile_size=params.tile_size)

        self.store: ParticleStore = store if store is not None else create_store(params)
        self.tick_count = 0
        self.sim_time = 0.0
        self.last_stage_ms: dict[str, float] = {}
        self.last_tick_ms: float | None = None
        self.last_divergence: SimulationDiverged | None = None

    def reset(self) -> None:
        """Rebuild the population from the params seed."""
        self.store = create_store(self.params, random.Random(self.params.seed))
        self.tick_count = 0
        self.sim_time = 0.0
        self.last_stage_ms = {}
        self.last_tick_ms = None
        self.last_divergence = None

    def tick(self, dt: float) -> None:
        """
        Advance the simulation by one tick.

        Runs force -> motion -> wrap -> mass. Each stage finishes for every
        particle before the next one starts.

        Args:
            dt: Elapsed simulated time. Only the force stage scales by it;
                positions advance by the full velocity.
        """
        store = self.store
        timings: dict[str, float] = {}
        t_start = time.perf_counter()

        t0 = t_start
        self.forces.apply(store, dt)
        t1 = time.perf_counter()
        timings["force"] = (t1 - t0) * 1000.0

        integrate_positions(store, self.executor)
        t2 = time.perf_counter()
        timings["motion"] = (t2 - t1) * 1000.0

        wrap_positions(store, self.size_x, self.size_y, self.executor)
        t3 = time.perf_counter()
        timings["wrap"] = (t3 - t2) * 1000.0

        update_effective_mass(store, self.executor)
        t4 = time.perf_counter()
        timings["mass"] = (t4 - t3) * 1000.0

        self.last_stage_ms = timings
        self.last_tick_ms = (t4 - t_start) * 1000.0
        self.tick_count += 1
        self.sim_time += float(dt)

        interval = int(self.params.divergence_check_interval)
        if interval > 0 and self.tick_count % interval == 0:
            diverged = self.check_divergence()
            if diverged is not None:
                self.last_divergence = diverged
                print(f"[pipeline] {diverged}", file=sys.stderr)
                warnings.warn(diverged, stacklevel=2)

    def run(self, ticks: int, dt: float) -> None:
        for _ in range(int(ticks)):
            self.tick(dt)

    def check_divergence(self) -> SimulationDiverged | None:
        """Scan for non-finite state; returns the condition instead of raising it."""
        bad = self.store.non_finite_indices()
        if not bad:
            return None
        return SimulationDiverged(self.tick_count, bad)

    def validate_state(self) -> list[str]:
        issues: list[str] = []
        store = self.store
        sx = self.size_x
        sy = self.size_y

        for i in store.non_finite_indices():
            issues.append(f"particle {i} has non-finite position/velocity/mass")

        pos = store.positions
        out_x = np.flatnonzero(np.abs(pos[:, 0]) > sx)
        out_y = np.flatnonzero(np.abs(pos[:, 1]) > sy)
        for i in sorted(set(out_x.tolist()) | set(out_y.tolist())):
            issues.append(f"particle {i} outside wrap bounds")

        for i in np.flatnonzero(store.masses < 0.0).tolist():
            issues.append(f"particle {i} has negative effective mass")

        return issues

    def counts(self) -> dict[str, int]:
        return self.store.counts()

    def positions_xy(self) -> np.ndarray:
        """(N, 2) copy of the x/y positions, for the renderer."""
        return self.store.positions[:, :2].copy()

    def close(self) -> None:
        self.executor.shutdown()

    def __enter__(self) -> "ParticlePipeline":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
