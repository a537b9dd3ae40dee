from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from charge_sim2d.core.pipeline import ParticlePipeline
from charge_sim2d.params import SimParams
from charge_sim2d.rendering import drawing as drawing_mod
from charge_sim2d.rendering.pyglet_renderer import RenderFrame, run_pyglet


class ChargeSimApp:
    def __init__(self, params: SimParams) -> None:
        self.params = params
        for warning in params.validate():
            print(f"[params] {warning}", file=sys.stderr)
        self.pipeline = ParticlePipeline(params)

    def _step(self, dt: float) -> None:
        self.pipeline.tick(dt * float(self.params.time_scale))

    def _get_caption(self, frame: RenderFrame) -> str:
        return drawing_mod.caption_text(
            self.pipeline.counts(),
            tick=self.pipeline.tick_count,
            fps=frame.fps,
            force_ms=self.pipeline.forces.last_force_ms,
        )

    def run(self) -> None:
        try:
            run_pyglet(
                width=self.params.width,
                height=self.params.height,
                background_rgb=tuple(self.params.background),  # type: ignore[arg-type]
                species=self.pipeline.store.species,
                get_positions_xy=self.pipeline.positions_xy,
                step_simulation=self._step,
                get_caption=self._get_caption,
                zoom=self.params.zoom,
                target_fps=self.params.target_fps,
                title="charge sim 2D - pyglet",
            )
        finally:
            self.pipeline.close()

    def run_headless(self, ticks: int, dt: float) -> dict[str, float]:
        """Run without a window and return a summary of the final state."""
        t0 = time.perf_counter()
        try:
            self.pipeline.run(ticks, dt)
        finally:
            self.pipeline.close()
        elapsed = time.perf_counter() - t0

        summary = dict(self.pipeline.store.summary())
        summary["ticks"] = self.pipeline.tick_count
        summary["sim_time"] = self.pipeline.sim_time
        summary["wall_s"] = elapsed
        issues = self.pipeline.validate_state()
        summary["issues"] = len(issues)
        for issue in issues[:10]:
            print(f"[validate] {issue}", file=sys.stderr)
        return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Charged particle simulation on a toroidal plane")
    parser.add_argument("--params", type=Path, default=None, help="JSON parameter file")
    parser.add_argument("--electrons", type=int, default=None, help="Number of electrons")
    parser.add_argument("--up-quarks", type=int, default=None, help="Number of up quarks")
    parser.add_argument("--down-quarks", type=int, default=None, help="Number of down quarks")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the initial population")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads (0 = all cores)")
    parser.add_argument("--headless", action="store_true", help="Run without a window")
    parser.add_argument("--ticks", type=int, default=100, help="Ticks to run in headless mode")
    parser.add_argument("--dt", type=float, default=1.0 / 60.0, help="Tick length in headless mode")
    parser.add_argument("--save-params", type=Path, default=None, help="Write the resolved params and exit")
    return parser


def params_from_args(args: argparse.Namespace) -> SimParams:
    params = SimParams.load(args.params) if args.params is not None else SimParams()
    overrides = {
        "electron_count": args.electrons,
        "up_quark_count": args.up_quarks,
        "down_quark_count": args.down_quarks,
        "seed": args.seed,
        "workers": args.workers,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(params, name, value)
    return params.clamp()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        params = params_from_args(args)
    except (OSError, ValueError) as e:
        print(f"[params] Error: {e}", file=sys.stderr)
        return 2

    if args.save_params is not None:
        params.save(args.save_params)
        return 0

    app = ChargeSimApp(params)
    if args.headless:
        summary = app.run_headless(args.ticks, args.dt)
        for k, v in summary.items():
            print(f"{k}: {v}")
        return 0

    app.run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
