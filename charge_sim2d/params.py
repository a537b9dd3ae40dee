from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from charge_sim2d.core.species import Species


@dataclass(slots=True)
class SimParams:
    electron_count: int = 1000
    up_quark_count: int = 1000
    down_quark_count: int = 1000
    seed: int = 1

    # half-extents of the simulation box; x/y wrap, z only bounds the initial sampling
    size_x: float = 400.0
    size_y: float = 400.0
    size_z: float = 400.0

    workers: int = 0  # 0 = os.cpu_count()
    chunk_size: int = 256
    tile_size: int = 1024
    divergence_check_interval: int = 0  # ticks between non-finite scans, 0 = off

    width: int = 1280
    height: int = 720
    background: tuple[int, int, int] = (0, 0, 0)
    target_fps: int = 60
    time_scale: float = 1.0
    zoom: float = 1.0

    def clamp(self) -> "SimParams":
        self.electron_count = max(0, int(self.electron_count))
        self.up_quark_count = max(0, int(self.up_quark_count))
        self.down_quark_count = max(0, int(self.down_quark_count))
        self.seed = int(self.seed)
        self.size_x = max(1.0, float(self.size_x))
        self.size_y = max(1.0, float(self.size_y))
        self.size_z = max(0.0, float(self.size_z))
        self.workers = max(0, min(256, int(self.workers)))
        self.chunk_size = max(1, min(1 << 20, int(self.chunk_size)))
        self.tile_size = max(16, min(1 << 16, int(self.tile_size)))
        self.divergence_check_interval = max(0, int(self.divergence_check_interval))
        self.width = max(320, int(self.width))
        self.height = max(240, int(self.height))
        bg = tuple(self.background)[:3]
        if len(bg) != 3:
            bg = (0, 0, 0)
        self.background = tuple(max(0, min(255, int(c))) for c in bg)  # type: ignore[assignment]
        self.target_fps = max(10, int(self.target_fps))
        self.time_scale = min(100.0, max(0.01, float(self.time_scale)))
        self.zoom = min(50.0, max(0.05, float(self.zoom)))
        return self

    def validate(self) -> list[str]:
        warnings: list[str] = []

        if self.total_count() == 0:
            warnings.append("population is empty: all species counts are 0.")
        elif self.total_count() == 1:
            warnings.append("single particle: no pair interactions will occur.")
        if self.chunk_size > self.total_count() > 0 and self.resolved_workers() > 1:
            warnings.append("chunk_size exceeds population: only one worker will be used.")
        if self.size_x * self.zoom * 2.0 > self.width or self.size_y * self.zoom * 2.0 > self.height:
            warnings.append("bounds exceed the window at this zoom: edge particles are off screen.")
        if self.size_z == 0.0:
            warnings.append("size_z=0: all particles start in the z=0 plane.")

        return warnings

    def count_for(self, species: "Species") -> int:
        counts = {
            "electron": self.electron_count,
            "up_quark": self.up_quark_count,
            "down_quark": self.down_quark_count,
        }
        return int(counts.get(species.name, 0))

    def total_count(self) -> int:
        return int(self.electron_count) + int(self.up_quark_count) + int(self.down_quark_count)

    def resolved_workers(self) -> int:
        if int(self.workers) > 0:
            return int(self.workers)
        return os.cpu_count() or 1

    @classmethod
    def load(cls, path: str | Path) -> "SimParams":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("params file must contain a JSON object.")
        # shorthand: "size" sets both wrapped axes
        if "size" in data:
            for key in ("size_x", "size_y"):
                data.setdefault(key, data["size"])
        filtered: dict[str, Any] = {k: v for k, v in data.items() if k in cls.__annotations__}
        return cls(**filtered).clamp()

    def save(self, path: str | Path) -> None:
        data = asdict(self)
        data["background"] = list(self.background)
        Path(path).write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
