from __future__ import annotations

import threading
from typing import Optional

import cv2
import numpy as np

from .hp_types import CameraIntrinsics, Pose
from .transforms import project


def annotate(
    image: np.ndarray,
    corners: Optional[np.ndarray],
    pose: Optional[Pose],
    intrinsics: Optional[CameraIntrinsics],
    fps: float,
) -> np.ndarray:
    """Draw marker outline, pose centroid and the frame-rate readout in place."""
    if corners is not None:
        pts = np.asarray(corners, dtype=np.float32).reshape(-1, 2)
        for i in range(len(pts)):
            p1 = tuple(int(round(v)) for v in pts[i])
            p2 = tuple(int(round(v)) for v in pts[(i + 1) % len(pts)])
            cv2.line(image, p1, p2, (0, 0, 255), 2, cv2.LINE_8)

    if pose is not None and intrinsics is not None:
        centre = project(np.zeros((1, 3)), pose.rvec, pose.tvec, intrinsics)[0]
        if np.all(np.isfinite(centre)):
            cv2.circle(image, (int(centre[0]), int(centre[1])), 4, (255, 0, 255), -1)

    txt = f"Hz: {min(9999, max(0, int(fps)))}"
    cv2.putText(image, txt, (10, 32), cv2.FONT_HERSHEY_PLAIN, 2, (0, 255, 0), 1)
    return image


class LatestFrameSink:
    """Keeps the most recent annotated frame for a UI thread to poll."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frame: Optional[np.ndarray] = None

    def __call__(self, image: np.ndarray) -> None:
        with self._lock:
            self._frame = image

    def take(self) -> Optional[np.ndarray]:
        with self._lock:
            frame, self._frame = self._frame, None
        return frame
