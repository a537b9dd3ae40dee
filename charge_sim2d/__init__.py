"""Charged point particles on a toroidal plane: all-pairs force integration."""

from charge_sim2d.core.pipeline import ParticlePipeline
from charge_sim2d.core.species import Species
from charge_sim2d.core.store import Particle, ParticleStore
from charge_sim2d.errors import InvalidSpecies, SimulationDiverged
from charge_sim2d.params import SimParams

__version__ = "0.1.0"

__all__ = [
    "InvalidSpecies",
    "Particle",
    "ParticlePipeline",
    "ParticleStore",
    "SimParams",
    "SimulationDiverged",
    "Species",
]
