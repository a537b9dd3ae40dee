"""
Initial population for the charge simulation.

Particles are created once, species by species, with a position drawn
uniformly inside the simulation box and zero velocity.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from charge_sim2d.core.species import Species
from charge_sim2d.core.store import Particle, ParticleStore

if TYPE_CHECKING:
    from charge_sim2d.params import SimParams


def random_position(
    rng: random.Random,
    size: tuple[float, float, float],
) -> tuple[float, float, float]:
    """
    Sample a point uniformly inside `[-size, size)` on each axis.

    Args:
        rng: Random number generator instance
        size: (sx, sy, sz) half-extents

    Returns:
        (x, y, z) position
    """
    sx, sy, sz = size
    return (
        rng.uniform(-sx, sx),
        rng.uniform(-sy, sy),
        rng.uniform(-sz, sz),
    )


def create_random_population(
    params: "SimParams",
    rng: random.Random,
    species: tuple[Species, ...] = Species.ALL,
) -> list[Particle]:
    """
    Create the configured number of particles for each species.

    Args:
        params: Simulation parameters (counts and box size)
        rng: Random number generator
        species: Species to populate, in order

    Returns:
        List of Particle records at rest, grouped by species
    """
    size = (float(params.size_x), float(params.size_y), float(params.size_z))
    particles: list[Particle] = []
    for sp in species:
        for _ in range(params.count_for(sp)):
            x, y, z = random_position(rng, size)
            particles.append(Particle(sp, x, y, z))
    return particles


def create_store(params: "SimParams", rng: random.Random | None = None) -> ParticleStore:
    """Build a ParticleStore from `params`, seeded from `params.seed` unless `rng` is given."""
    if rng is None:
        rng = random.Random(params.seed)
    return ParticleStore.from_particles(create_random_population(params, rng))
