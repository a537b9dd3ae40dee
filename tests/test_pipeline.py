"""Tests for the tick driver."""

import math
import unittest
import warnings

import numpy as np

from charge_sim2d.core.pipeline import STAGES, ParticlePipeline
from charge_sim2d.core.species import ELECTRON, Species
from charge_sim2d.core.store import Particle, ParticleStore
from charge_sim2d.errors import InvalidSpecies, SimulationDiverged
from charge_sim2d.params import SimParams


def _params(**kwargs) -> SimParams:
    base = dict(
        electron_count=4,
        up_quark_count=3,
        down_quark_count=3,
        size_x=50.0,
        size_y=50.0,
        size_z=50.0,
        workers=1,
        chunk_size=64,
        seed=3,
    )
    base.update(kwargs)
    return SimParams(**base).clamp()


class TestTick(unittest.TestCase):
    """Tests for ParticlePipeline.tick and run."""

    def test_stage_order_within_tick(self) -> None:
        """Test that force, motion, wrap and mass run in that order."""
        with ParticlePipeline(_params()) as pipe:
            before = pipe.store.copy()
            pipe.tick(0.05)
            store = pipe.store

            expected_v = before.velocities + pipe.forces.compute_impulses(before.snapshot(), before.masses, 0.05)
            np.testing.assert_allclose(store.velocities, expected_v, rtol=1e-5, atol=1e-7)

            # motion used the velocity written by the force stage of this tick
            moved = before.positions + store.velocities
            inside = (np.abs(moved[:, 0]) <= 50.0) & (np.abs(moved[:, 1]) <= 50.0)
            np.testing.assert_allclose(store.positions[inside], moved[inside], rtol=1e-6, atol=1e-6)

            # mass derived from the velocity of this tick
            speed = np.linalg.norm(store.velocities.astype(np.float64), axis=1)
            np.testing.assert_allclose(store.masses, store.rest_masses + speed, rtol=1e-6)

    def test_partitioning_does_not_diverge(self) -> None:
        """Test that different worker layouts agree after many ticks."""
        a = ParticlePipeline(_params(workers=1, chunk_size=10))
        b = ParticlePipeline(_params(workers=4, chunk_size=3))
        try:
            for _ in range(100):
                a.tick(0.01)
                b.tick(0.01)
            np.testing.assert_allclose(a.store.positions, b.store.positions, rtol=0, atol=1e-4)
            np.testing.assert_allclose(a.store.velocities, b.store.velocities, rtol=0, atol=1e-4)
        finally:
            a.close()
            b.close()

    def test_population_invariant(self) -> None:
        """Test that species, counts and charges never change."""
        with ParticlePipeline(_params()) as pipe:
            species = pipe.store.species
            names = pipe.store.species_names()
            counts = pipe.counts()
            pipe.run(25, 0.02)
            self.assertIs(pipe.store.species, species)
            self.assertEqual(pipe.store.species_names(), names)
            self.assertEqual(pipe.counts(), counts)
            self.assertEqual(len(pipe.store), 10)
            expected = np.array([sp.charge for sp in species], dtype=np.float32)
            np.testing.assert_array_equal(pipe.store.charges, expected)

    def test_positions_stay_in_bounds(self) -> None:
        """Test that x and y stay inside the wrap bounds."""
        with ParticlePipeline(_params(size_x=5.0, size_y=5.0)) as pipe:
            pipe.store.velocities[:, 0] = 3.0
            pipe.store.velocities[:, 1] = -4.0
            pipe.run(10, 0.01)
            self.assertEqual(pipe.validate_state(), [])
            self.assertTrue(np.all(np.abs(pipe.positions_xy()) <= 5.0))

    def test_counters(self) -> None:
        """Test tick count, simulated time and stage timings."""
        with ParticlePipeline(_params()) as pipe:
            pipe.tick(0.5)
            pipe.tick(0.25)
            self.assertEqual(pipe.tick_count, 2)
            self.assertAlmostEqual(pipe.sim_time, 0.75)
            self.assertEqual(tuple(pipe.last_stage_ms), STAGES)
            self.assertIsNotNone(pipe.last_tick_ms)

    def test_variable_dt(self) -> None:
        """Test that dt may change between ticks."""
        with ParticlePipeline(_params()) as pipe:
            for dt in (0.01, 0.05, 0.002):
                pipe.tick(dt)
            self.assertTrue(np.isfinite(pipe.store.positions).all())

    def test_reset_restores_initial_population(self) -> None:
        """Test that reset rebuilds the seeded population."""
        with ParticlePipeline(_params()) as pipe:
            initial = pipe.store.positions.copy()
            pipe.run(5, 0.1)
            pipe.reset()
            np.testing.assert_array_equal(pipe.store.positions, initial)
            np.testing.assert_array_equal(pipe.store.velocities, np.zeros_like(initial))
            self.assertEqual(pipe.tick_count, 0)

    def test_single_particle_does_not_move(self) -> None:
        """Test that a lone particle at rest stays put."""
        store = ParticleStore.from_particles([Particle(ELECTRON, 1.0, 2.0, 3.0)])
        with ParticlePipeline(_params(), store=store) as pipe:
            pipe.run(3, 1.0)
            np.testing.assert_array_equal(pipe.store.positions[0], np.array([1.0, 2.0, 3.0], dtype=np.float32))
            self.assertAlmostEqual(float(pipe.store.masses[0]), ELECTRON.rest_mass, places=6)

    def test_empty_population(self) -> None:
        """Test that an empty store ticks without error."""
        store = ParticleStore.from_particles([])
        with ParticlePipeline(_params(), store=store) as pipe:
            pipe.tick(0.1)
            self.assertEqual(pipe.tick_count, 1)
            self.assertIsNone(pipe.check_divergence())


class TestDiagnostics(unittest.TestCase):
    """Tests for divergence checks and state validation."""

    def test_check_divergence(self) -> None:
        """Test that a NaN velocity is reported with its index."""
        with ParticlePipeline(_params()) as pipe:
            self.assertIsNone(pipe.check_divergence())
            pipe.store.velocities[2, 0] = np.nan
            diverged = pipe.check_divergence()
            self.assertIsInstance(diverged, SimulationDiverged)
            self.assertEqual(diverged.indices, [2])
            self.assertIn("non-finite", str(diverged))

    def test_divergence_warns_without_halting(self) -> None:
        """Test that divergence warns and the pipeline keeps ticking."""
        with ParticlePipeline(_params(divergence_check_interval=1)) as pipe:
            pipe.store.velocities[0] = (np.inf, 0.0, 0.0)
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", RuntimeWarning)
                warnings.simplefilter("always", SimulationDiverged)
                with self.assertWarns(SimulationDiverged):
                    pipe.tick(0.01)
                pipe.tick(0.01)
            self.assertEqual(pipe.tick_count, 2)
            self.assertIsNotNone(pipe.last_divergence)
            self.assertIn(0, pipe.last_divergence.indices)

    def test_divergence_check_interval(self) -> None:
        """Test that the check only runs every Nth tick."""
        with ParticlePipeline(_params(divergence_check_interval=3)) as pipe:
            pipe.store.velocities[1, 0] = np.nan
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always")
                pipe.tick(0.0)
                pipe.tick(0.0)
                self.assertFalse(any(issubclass(w.category, SimulationDiverged) for w in caught))
                pipe.tick(0.0)
                self.assertTrue(any(issubclass(w.category, SimulationDiverged) for w in caught))

    def test_validate_state_flags_nan(self) -> None:
        """Test that validate_state lists non-finite and out-of-bounds rows."""
        with ParticlePipeline(_params()) as pipe:
            self.assertEqual(pipe.validate_state(), [])
            pipe.store.positions[0, 0] = math.nan
            pipe.store.positions[1, 1] = 1000.0
            issues = pipe.validate_state()
            self.assertTrue(any("non-finite" in issue for issue in issues))
            self.assertTrue(any("outside wrap bounds" in issue for issue in issues))

    def test_invalid_species_rejected_before_pipeline(self) -> None:
        """Test that a negative rest mass fails at store construction."""
        with self.assertRaises(InvalidSpecies):
            ParticleStore([Species("ghost", charge=1.0, rest_mass=-1.0)], [(0.0, 0.0, 0.0)])
