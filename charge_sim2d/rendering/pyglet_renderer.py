from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from . import drawing as drawing_mod

if TYPE_CHECKING:
    import numpy as np

    from charge_sim2d.core.species import Species


@dataclass(slots=True)
class RenderFrame:
    dt: float
    fps: float


def run_pyglet(
    *,
    width: int,
    height: int,
    background_rgb: tuple[int, int, int],
    species: tuple["Species", ...],
    get_positions_xy: Callable[[], "np.ndarray"],
    step_simulation: Callable[[float], None],
    get_caption: Callable[[RenderFrame], str] | None = None,
    zoom: float = 1.0,
    target_fps: int = 60,
    title: str = "charge sim 2D",
) -> None:
    try:
        import pyglet  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError("Missing dependency: install pyglet (pip install pyglet).") from e

    from pyglet import gl  # type: ignore
    from pyglet.window import key  # type: ignore

    window = pyglet.window.Window(width=width, height=height, caption=title, resizable=True, vsync=True)
    bg_r, bg_g, bg_b = background_rgb
    gl.glClearColor(bg_r / 255.0, bg_g / 255.0, bg_b / 255.0, 1.0)

    batch = pyglet.graphics.Batch()
    view = {"zoom": float(zoom), "paused": False}

    circles = []
    pts = drawing_mod.screen_positions(get_positions_xy(), width=width, height=height, zoom=view["zoom"])
    for sp, (sx, sy) in zip(species, pts):
        style = drawing_mod.style_for(sp)
        circles.append(
            pyglet.shapes.Circle(
                float(sx),
                float(sy),
                max(0.5, style.radius * view["zoom"]),
                segments=drawing_mod.CIRCLE_SEGMENTS,
                color=style.color,
                batch=batch,
            )
        )
    radii = [drawing_mod.style_for(sp).radius for sp in species]

    def sync_shapes() -> None:
        pts = drawing_mod.screen_positions(
            get_positions_xy(), width=window.width, height=window.height, zoom=view["zoom"]
        )
        for circle, (sx, sy) in zip(circles, pts):
            circle.position = (float(sx), float(sy))

    def sync_radii() -> None:
        for circle, r in zip(circles, radii):
            circle.radius = max(0.5, r * view["zoom"])

    @window.event
    def on_draw() -> None:
        window.clear()
        batch.draw()

    @window.event
    def on_key_press(symbol: int, modifiers: int) -> None:  # noqa: ARG001
        if symbol == key.SPACE:
            view["paused"] = not view["paused"]
        elif symbol in (key.PLUS, key.EQUAL, key.NUM_ADD):
            view["zoom"] = min(50.0, view["zoom"] * 1.25)
            sync_radii()
        elif symbol in (key.MINUS, key.NUM_SUBTRACT):
            view["zoom"] = max(0.05, view["zoom"] / 1.25)
            sync_radii()
        elif symbol in (key.ESCAPE, key.Q):
            window.close()
            pyglet.app.exit()

    def tick(dt: float) -> None:
        if not view["paused"]:
            step_simulation(dt)
        sync_shapes()
        if get_caption is not None:
            fps = 1.0 / dt if dt > 0.0 else 0.0
            window.set_caption(get_caption(RenderFrame(dt=dt, fps=fps)))

    pyglet.clock.schedule_interval(tick, 1.0 / max(10, target_fps))
    pyglet.app.run()
