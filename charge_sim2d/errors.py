"""
Error types for the charge simulation.

- InvalidSpecies: raised when a species definition cannot back a particle.
- SimulationDiverged: diagnostic condition for non-finite state. It is
  reported through `warnings.warn` and returned by the pipeline's
  `check_divergence()`; it never stops a tick.
"""

from __future__ import annotations


class InvalidSpecies(ValueError):
    """A species is unknown or has unusable charge / rest mass."""


class SimulationDiverged(RuntimeWarning):
    """
    Non-finite position, velocity or mass detected.

    Attributes:
        tick: Tick counter at which the scan ran
        indices: Indices of the offending particles
    """

    def __init__(self, tick: int, indices: list[int]) -> None:
        self.tick = int(tick)
        self.indices = list(indices)
        preview = ", ".join(str(i) for i in self.indices[:8])
        if len(self.indices) > 8:
            preview += ", ..."
        super().__init__(
            f"simulation diverged at tick {self.tick}: "
            f"{len(self.indices)} particle(s) with non-finite state ({preview})"
        )
