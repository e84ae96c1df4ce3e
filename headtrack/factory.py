from __future__ import annotations

from typing import Any, Callable, Dict

from .config import TrackerConfig
from .tracker import ArucoTracker, Tracker

TRACKERS: Dict[str, Callable[..., Tracker]] = {
    "aruco": ArucoTracker,
}


def register_tracker(name: str, ctor: Callable[..., Tracker]) -> None:
    TRACKERS[name.strip().lower()] = ctor


def create_tracker(config: TrackerConfig, **kwargs: Any) -> Tracker:
    key = (config.tracker or "").strip().lower()
    try:
        ctor = TRACKERS[key]
    except KeyError:
        raise KeyError(
            f"unknown tracker {config.tracker!r}; available: {', '.join(sorted(TRACKERS))}"
        ) from None
    return ctor(config, **kwargs)
