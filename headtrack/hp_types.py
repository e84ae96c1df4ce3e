from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass
class Frame:
    idx: int
    image: Any  # BGR ndarray
    gray: Any = None  # derived grayscale ndarray


@dataclass
class Roi:
    x: int
    y: int
    width: int
    height: int

    @property
    def is_valid(self) -> bool:
        return self.width > 1 and self.height > 1

    def fits(self, cols: int, rows: int) -> bool:
        return (
            self.is_valid
            and self.x >= 0
            and self.y >= 0
            and self.x + self.width <= cols
            and self.y + self.height <= rows
        )


# out-of-bounds rect meaning "no prior, search the whole frame"
NO_ROI = Roi(65535, 65535, 0, 0)


@dataclass
class CameraIntrinsics:
    fx: float
    fy: float
    cx: float
    cy: float

    @property
    def matrix(self) -> np.ndarray:
        return np.array(
            [[self.fx, 0.0, self.cx], [0.0, self.fy, self.cy], [0.0, 0.0, 1.0]],
            dtype=np.float64,
        )


@dataclass
class Pose:
    rvec: np.ndarray  # (3, 1)
    tvec: np.ndarray  # (3, 1)
    rotation: np.ndarray  # (3, 3)
    yaw: float
    pitch: float
    roll: float
    tx: float
    ty: float
    tz: float

    def channels(self) -> tuple[float, float, float, float, float, float]:
        return (self.yaw, self.pitch, self.roll, self.tx, self.ty, self.tz)


class TrackStatus(enum.Enum):
    NO_FRAME = "no_frame"
    NOT_FOUND = "not_found"
    NO_POSE = "no_pose"
    TRACKED = "tracked"


@dataclass
class TrackResult:
    status: TrackStatus
    corners: Any = None  # (4, 2) float32 when a marker was found
    pose: Pose | None = None

    @property
    def ok(self) -> bool:
        return self.status is TrackStatus.TRACKED
