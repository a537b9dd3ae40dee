"""Pipeline stages: force integration, motion, wrap and effective mass."""

from charge_sim2d.physics.forces import ForceIntegrator, compute_semi_forces_direct
from charge_sim2d.physics.motion import integrate_positions, update_effective_mass, wrap_positions

__all__ = [
    "ForceIntegrator",
    "compute_semi_forces_direct",
    "integrate_positions",
    "update_effective_mass",
    "wrap_positions",
]
