from __future__ import annotations

import json
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Optional

# (width, height); (0, 0) leaves the device default untouched
RESOLUTION_CHOICES: list[tuple[int, int]] = [(640, 480), (320, 240), (0, 0)]

# frames per second; 0 leaves the device default untouched
FPS_CHOICES: list[int] = [0, 30, 60, 75, 125, 200]


@dataclass
class TrackerConfig:
    tracker: str = "aruco"
    camera_name: str = "0"
    resolution: int = 0
    fps: int = 0
    fov: float = 56.0  # diagonal, degrees
    head_offset: tuple[float, float, float] = field(default=(0.0, 0.0, 0.0))
    aruco_dict: str = "4x4_50"
    size_min: float = 0.05
    size_max: float = 0.3
    release_delay_sec: float = 1.0
    log_file: Optional[str] = None
    dry_run: bool = False
    max_frames: Optional[int] = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def apply_overrides(self, **kwargs: Any) -> "TrackerConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        return self

    @property
    def resolution_hint(self) -> tuple[int, int]:
        idx = int(self.resolution)
        if idx < 0 or idx >= len(RESOLUTION_CHOICES):
            idx = 0
        return RESOLUTION_CHOICES[idx]

    @property
    def fps_hint(self) -> int:
        idx = int(self.fps)
        if idx < 0 or idx >= len(FPS_CHOICES):
            idx = 0
        return FPS_CHOICES[idx]


def _normalize_offset(value: Any) -> tuple[float, float, float]:
    if isinstance(value, dict):
        return (float(value.get("x", 0.0)), float(value.get("y", 0.0)), float(value.get("z", 0.0)))
    if isinstance(value, (list, tuple)) and len(value) == 3:
        return (float(value[0]), float(value[1]), float(value[2]))
    raise ValueError("head_offset must be [x, y, z] or a mapping with x/y/z")


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        import yaml  # type: ignore
    except Exception as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "YAML config requested but PyYAML is not installed. "
            "Install with: pip install pyyaml"
        ) from exc
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError("YAML config root must be a mapping")
    return data


def load_config(path: str | Path) -> TrackerConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = _load_yaml(p)
    else:
        with p.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)

    if not isinstance(raw, dict):
        raise ValueError("Config root must be a JSON/YAML object")

    cfg = TrackerConfig()
    cfg.tracker = str(raw.get("tracker", cfg.tracker))
    cfg.camera_name = str(raw.get("camera_name", cfg.camera_name))
    cfg.resolution = int(raw.get("resolution", cfg.resolution))
    cfg.fps = int(raw.get("fps", cfg.fps))
    cfg.fov = float(raw.get("fov", cfg.fov))
    if "head_offset" in raw:
        cfg.head_offset = _normalize_offset(raw["head_offset"])
    cfg.aruco_dict = str(raw.get("aruco_dict", cfg.aruco_dict))
    cfg.size_min = float(raw.get("size_min", cfg.size_min))
    cfg.size_max = float(raw.get("size_max", cfg.size_max))
    if not 0.0 < cfg.size_min < cfg.size_max:
        raise ValueError("size_min must be positive and smaller than size_max")
    cfg.release_delay_sec = float(raw.get("release_delay_sec", cfg.release_delay_sec))
    cfg.log_file = raw.get("log_file", cfg.log_file)
    cfg.dry_run = bool(raw.get("dry_run", cfg.dry_run))
    cfg.max_frames = raw.get("max_frames", cfg.max_frames)
    if cfg.max_frames is not None:
        cfg.max_frames = int(cfg.max_frames)

    return cfg
