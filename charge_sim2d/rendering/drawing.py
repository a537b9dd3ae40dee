"""
Drawing helpers for the 2D particle view.

Pure functions only (no pyglet import) so they can be tested headless.
Particles are drawn as small 5-sided circles, one style per species; radii
are for visibility and not to scale.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np

    from charge_sim2d.core.species import Species


CIRCLE_SEGMENTS = 5


@dataclass(frozen=True, slots=True)
class SpeciesStyle:
    radius: float
    color_linear: tuple[float, float, float]

    @property
    def color(self) -> tuple[int, int, int]:
        r, g, b = self.color_linear
        return linear_to_srgb8(r), linear_to_srgb8(g), linear_to_srgb8(b)


SPECIES_STYLES: dict[str, SpeciesStyle] = {
    "electron": SpeciesStyle(radius=1.0, color_linear=(0.3, 0.3, 1.0)),
    "up_quark": SpeciesStyle(radius=0.5, color_linear=(0.8, 0.3, 0.3)),
    "down_quark": SpeciesStyle(radius=0.5, color_linear=(0.3, 0.8, 0.3)),
}
DEFAULT_STYLE = SpeciesStyle(radius=0.75, color_linear=(0.8, 0.8, 0.8))


def linear_to_srgb8(c: float) -> int:
    """
    Convert one linear-light channel to an 8-bit sRGB value.

    Args:
        c: Linear channel value (clamped to 0.0 - 1.0)

    Returns:
        Encoded value 0-255
    """
    c = max(0.0, min(1.0, float(c)))
    if c <= 0.0031308:
        s = 12.92 * c
    else:
        s = 1.055 * (c ** (1.0 / 2.4)) - 0.055
    return int(round(s * 255.0))


def style_for(species: "Species") -> SpeciesStyle:
    return SPECIES_STYLES.get(species.name, DEFAULT_STYLE)


def world_to_screen(
    x: float,
    y: float,
    *,
    width: int,
    height: int,
    zoom: float = 1.0,
) -> tuple[float, float]:
    """
    Map simulation x/y to window pixels.

    The simulation origin sits at the window centre and one unit is `zoom`
    pixels, like a 2D camera at the origin.
    """
    return width * 0.5 + x * zoom, height * 0.5 + y * zoom


def screen_positions(
    positions_xy: "np.ndarray",
    *,
    width: int,
    height: int,
    zoom: float = 1.0,
) -> "np.ndarray":
    """Vectorized `world_to_screen` for an (N, 2) array."""
    out = positions_xy * zoom
    out[:, 0] += width * 0.5
    out[:, 1] += height * 0.5
    return out


def caption_text(counts: dict[str, int], *, tick: int, fps: float, force_ms: float | None) -> str:
    parts = [f"{name.replace('_', ' ')}s: {n}" for name, n in counts.items()]
    force = f"{force_ms:.1f} ms" if force_ms is not None else "-"
    return f"charge sim 2D | {' | '.join(parts)} | tick {tick} | {fps:.0f} fps | force {force}"
