"""
Particle species.

Each species carries a charge in elementary charges and a rest mass in
electronvolts. The reference set is electron, up quark and down quark;
quark masses are the average of their published lower and upper limits.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import ClassVar

from charge_sim2d.errors import InvalidSpecies


@dataclass(frozen=True, slots=True)
class Species:
    name: str
    charge: float
    rest_mass: float

    ELECTRON: ClassVar["Species"]
    UP_QUARK: ClassVar["Species"]
    DOWN_QUARK: ClassVar["Species"]
    ALL: ClassVar[tuple["Species", ...]]

    def __post_init__(self) -> None:
        if not math.isfinite(float(self.charge)):
            raise InvalidSpecies(f"species {self.name!r} has non-finite charge {self.charge!r}")

    @property
    def valid_mass(self) -> bool:
        m = float(self.rest_mass)
        return math.isfinite(m) and m > 0.0

    def check(self) -> "Species":
        """Return self, or raise InvalidSpecies if it cannot back a particle."""
        if not self.valid_mass:
            raise InvalidSpecies(
                f"species {self.name!r} needs a positive rest mass, got {self.rest_mass!r}"
            )
        return self

    @classmethod
    def by_name(cls, name: str) -> "Species":
        key = str(name or "").strip().lower().replace("-", "_").replace(" ", "_")
        for sp in cls.ALL:
            if sp.name == key:
                return sp
        raise InvalidSpecies(f"unknown species {name!r}")


Species.ELECTRON = Species("electron", charge=-1.0, rest_mass=0.51099895)
Species.UP_QUARK = Species("up_quark", charge=2.0 / 3.0, rest_mass=(3.0 + 1.8) / 2.0)
Species.DOWN_QUARK = Species("down_quark", charge=-1.0 / 3.0, rest_mass=(5.8 + 4.1) / 2.0)
Species.ALL = (Species.ELECTRON, Species.UP_QUARK, Species.DOWN_QUARK)

ELECTRON = Species.ELECTRON
UP_QUARK = Species.UP_QUARK
DOWN_QUARK = Species.DOWN_QUARK
