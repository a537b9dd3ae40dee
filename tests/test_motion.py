"""Tests for motion, toroidal wrap and effective mass stages."""

import pytest
import numpy as np

from charge_sim2d.core.species import ELECTRON, UP_QUARK, Species
from charge_sim2d.core.store import Particle, ParticleStore
from charge_sim2d.core.workers import ChunkExecutor
from charge_sim2d.physics.motion import (
    integrate_positions,
    update_effective_mass,
    wrap_coordinate,
    wrap_positions,
)

SX = 400.0
SY = 300.0
UNIT_MASS = Species("unit", charge=0.0, rest_mass=1.0)


@pytest.fixture
def executor():
    with ChunkExecutor(workers=2, chunk_size=2) as ex:
        yield ex


class TestIntegratePositions:
    """Tests for integrate_positions function."""

    def test_adds_velocity(self, executor):
        """Test that each position moves by its velocity."""
        store = ParticleStore.from_particles([
            Particle(ELECTRON, 1.0, 2.0, 3.0, vx=0.5, vy=-1.0, vz=2.0),
            Particle(UP_QUARK, -5.0, 0.0, 0.0),
            Particle(ELECTRON, 0.0, 0.0, 0.0, vx=10.0),
        ])
        integrate_positions(store, executor)
        np.testing.assert_allclose(store.positions[0], [1.5, 1.0, 5.0])
        np.testing.assert_allclose(store.positions[1], [-5.0, 0.0, 0.0])
        np.testing.assert_allclose(store.positions[2], [10.0, 0.0, 0.0])

    def test_velocity_unchanged(self, executor):
        """Test that velocities are not modified."""
        store = ParticleStore.from_particles([Particle(ELECTRON, 0.0, 0.0, 0.0, vx=1.0, vy=2.0)])
        integrate_positions(store, executor)
        np.testing.assert_allclose(store.velocities[0], [1.0, 2.0, 0.0])


class TestWrapCoordinate:
    """Tests for wrap_coordinate function."""

    def test_inside_unchanged(self):
        """Test that values within the bounds, edges included, are kept."""
        assert wrap_coordinate(SX - 5.0, SX) == SX - 5.0
        assert wrap_coordinate(-SX, SX) == -SX
        assert wrap_coordinate(SX, SX) == SX

    def test_overshoot_discarded(self):
        """Test that wrapped values land exactly on the opposite edge."""
        assert wrap_coordinate(SX + 5.0, SX) == -SX
        assert wrap_coordinate(-SX - 123.0, SX) == SX


class TestWrapPositions:
    """Tests for wrap_positions function."""

    def test_wrap_x_exact(self, executor):
        """Test that x past the right edge wraps to the left edge."""
        store = ParticleStore.from_particles([
            Particle(ELECTRON, SX + 5.0, 0.0, 0.0),
            Particle(ELECTRON, SX - 5.0, 0.0, 0.0),
        ])
        wrap_positions(store, SX, SY, executor)
        assert float(store.positions[0, 0]) == -SX
        assert float(store.positions[1, 0]) == SX - 5.0

    def test_wrap_negative_side_and_y(self, executor):
        """Test wrapping on both sides of x and y independently."""
        store = ParticleStore.from_particles([
            Particle(ELECTRON, -SX - 1.0, 0.0, 0.0),
            Particle(ELECTRON, 0.0, SY + 0.5, 0.0),
            Particle(ELECTRON, 0.0, -SY - 50.0, 0.0),
            Particle(ELECTRON, SX + 1.0, SY + 1.0, 0.0),
        ])
        wrap_positions(store, SX, SY, executor)
        assert float(store.positions[0, 0]) == SX
        assert float(store.positions[1, 1]) == -SY
        assert float(store.positions[2, 1]) == SY
        assert float(store.positions[3, 0]) == -SX
        assert float(store.positions[3, 1]) == -SY

    def test_z_never_wrapped(self, executor):
        """Test that z is left untouched."""
        store = ParticleStore.from_particles([Particle(ELECTRON, 0.0, 0.0, 5000.0)])
        wrap_positions(store, SX, SY, executor)
        assert float(store.positions[0, 2]) == 5000.0

    def test_all_inside_after_wrap(self, executor):
        """Test that every x and y is within bounds after one wrap."""
        rng = np.random.default_rng(5)
        pts = rng.uniform(-3 * SX, 3 * SX, size=(50, 3))
        store = ParticleStore([ELECTRON] * 50, pts)
        wrap_positions(store, SX, SY, executor)
        assert np.all(np.abs(store.positions[:, 0]) <= SX)
        assert np.all(np.abs(store.positions[:, 1]) <= SY)


class TestUpdateEffectiveMass:
    """Tests for update_effective_mass function."""

    def test_rest_mass_plus_speed(self, executor):
        """Test that mass is rest mass plus speed."""
        store = ParticleStore.from_particles([Particle(UNIT_MASS, 0.0, 0.0, 0.0, vx=3.0, vy=4.0)])
        update_effective_mass(store, executor)
        assert float(store.masses[0]) == 6.0

    def test_at_rest_equals_rest_mass(self, executor):
        """Test that a stale effective mass is replaced by rest mass at rest."""
        store = ParticleStore.from_particles([
            Particle(ELECTRON, 0.0, 0.0, 0.0, mass=99.0),
            Particle(UP_QUARK, 0.0, 0.0, 0.0, mass=7.0),
        ])
        update_effective_mass(store, executor)
        np.testing.assert_array_equal(store.masses, store.rest_masses)

    def test_uses_full_3d_speed(self, executor):
        """Test that z velocity contributes to the speed."""
        store = ParticleStore.from_particles([Particle(UNIT_MASS, 0.0, 0.0, 0.0, vx=2.0, vy=3.0, vz=6.0)])
        update_effective_mass(store, executor)
        assert float(store.masses[0]) == pytest.approx(8.0)

    def test_never_negative(self, executor):
        """Test that effective mass never drops below rest mass."""
        rng = np.random.default_rng(1)
        store = ParticleStore([ELECTRON] * 20, rng.uniform(-1, 1, size=(20, 3)), rng.normal(size=(20, 3)))
        update_effective_mass(store, executor)
        assert np.all(store.masses >= store.rest_masses)
