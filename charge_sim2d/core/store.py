"""
Particle storage.

The population lives in contiguous float32 arrays so that every pipeline
stage can work on index ranges. Record-level access goes through the
`Particle` dataclass, which is always a copy.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

import numpy as np

from charge_sim2d.core.species import Species
from charge_sim2d.errors import InvalidSpecies

DTYPE = np.float32


@dataclass(slots=True)
class Particle:
    """
    One simulated body.

    Attributes:
        species: Species of the particle (never changes)
        x, y, z: Position in m * k_e / e
        vx, vy, vz: Velocity, same distance unit per unit of simulated time
        mass: Effective mass in eV, defaults to the species rest mass
    """
    species: Species
    x: float
    y: float
    z: float
    vx: float = 0.0
    vy: float = 0.0
    vz: float = 0.0
    mass: float | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.species, Species):
            raise InvalidSpecies(f"expected a Species, got {type(self.species).__name__}")
        self.species.check()
        if self.mass is None:
            self.mass = float(self.species.rest_mass)
        elif not (math.isfinite(float(self.mass)) and float(self.mass) > 0.0):
            raise ValueError(f"effective mass must be finite and > 0, got {self.mass!r}")


@dataclass(frozen=True, slots=True)
class ForceSnapshot:
    """Read-only positions and charges shared by all force workers in one tick."""
    positions: np.ndarray
    charges: np.ndarray

    def __len__(self) -> int:
        return int(self.positions.shape[0])


class ParticleStore:
    """Fixed-size particle population."""

    def __init__(
        self,
        species: Iterable[Species],
        positions: np.ndarray,
        velocities: np.ndarray | None = None,
        masses: np.ndarray | None = None,
    ) -> None:
        species = tuple(species)
        for sp in species:
            if not isinstance(sp, Species):
                raise InvalidSpecies(f"expected a Species, got {type(sp).__name__}")
            sp.check()
        n = len(species)

        positions = np.array(positions, dtype=DTYPE).reshape(-1, 3) if n else np.zeros((0, 3), dtype=DTYPE)
        if positions.shape != (n, 3):
            raise ValueError(f"positions must have shape ({n}, 3), got {positions.shape}")
        if velocities is None:
            velocities = np.zeros((n, 3), dtype=DTYPE)
        else:
            velocities = np.array(velocities, dtype=DTYPE).reshape(-1, 3) if n else np.zeros((0, 3), dtype=DTYPE)
            if velocities.shape != (n, 3):
                raise ValueError(f"velocities must have shape ({n}, 3), got {velocities.shape}")

        table: list[Species] = []
        index = np.empty(n, dtype=np.int16)
        for i, sp in enumerate(species):
            if sp not in table:
                table.append(sp)
            index[i] = table.index(sp)

        self.species: tuple[Species, ...] = species
        self.species_table: tuple[Species, ...] = tuple(table)
        self.species_index = index
        self.charges = np.array([sp.charge for sp in species], dtype=DTYPE)
        self.rest_masses = np.array([sp.rest_mass for sp in species], dtype=DTYPE)
        self.positions = positions
        self.velocities = velocities
        if masses is None:
            self.masses = self.rest_masses.copy()
        else:
            self.masses = np.array(masses, dtype=DTYPE).reshape(-1)
            if self.masses.shape != (n,):
                raise ValueError(f"masses must have shape ({n},), got {self.masses.shape}")
            if not (np.isfinite(self.masses).all() and (self.masses > 0.0).all()):
                raise ValueError("effective masses must be finite and > 0")

        # species properties are fixed for the lifetime of the store
        self.charges.flags.writeable = False
        self.rest_masses.flags.writeable = False
        self.species_index.flags.writeable = False

    @classmethod
    def from_particles(cls, particles: Iterable[Particle]) -> "ParticleStore":
        particles = list(particles)
        return cls(
            species=[p.species for p in particles],
            positions=[(p.x, p.y, p.z) for p in particles],
            velocities=[(p.vx, p.vy, p.vz) for p in particles],
            masses=[p.mass for p in particles],
        )

    def __len__(self) -> int:
        return len(self.species)

    def particle(self, i: int) -> Particle:
        x, y, z = (float(v) for v in self.positions[i])
        vx, vy, vz = (float(v) for v in self.velocities[i])
        return Particle(self.species[i], x, y, z, vx, vy, vz, mass=float(self.masses[i]))

    def particles(self) -> list[Particle]:
        return [self.particle(i) for i in range(len(self))]

    def snapshot(self) -> ForceSnapshot:
        positions = self.positions.copy()
        positions.flags.writeable = False
        return ForceSnapshot(positions=positions, charges=self.charges)

    def counts(self) -> dict[str, int]:
        out = {sp.name: 0 for sp in self.species_table}
        for sp in self.species:
            out[sp.name] += 1
        return out

    def species_names(self) -> list[str]:
        return [sp.name for sp in self.species]

    def copy(self) -> "ParticleStore":
        # masses are not revalidated: a diverged store may hold non-finite values
        other = ParticleStore(self.species, self.positions.copy(), self.velocities.copy())
        other.masses = self.masses.copy()
        return other

    def speeds(self) -> np.ndarray:
        return np.sqrt(np.sum(self.velocities * self.velocities, axis=1, dtype=DTYPE))

    def non_finite_indices(self) -> list[int]:
        ok = (
            np.isfinite(self.positions).all(axis=1)
            & np.isfinite(self.velocities).all(axis=1)
            & np.isfinite(self.masses)
        )
        return [int(i) for i in np.flatnonzero(~ok)]

    def summary(self) -> dict[str, float]:
        n = len(self)
        if n == 0:
            return {"count": 0, "mean_speed": 0.0, "max_speed": 0.0, "mean_mass": 0.0}
        speeds = self.speeds()
        return {
            "count": n,
            "mean_speed": float(np.mean(speeds)),
            "max_speed": float(np.max(speeds)),
            "mean_mass": float(np.mean(self.masses)),
        }
