from __future__ import annotations

from typing import Sequence

import numpy as np

from .hp_types import CameraIntrinsics, NO_ROI, Pose, Roi
from .transforms import project

# inflation of the projected marker footprint to tolerate motion between frames
SEARCH_WINDOW = 1.3


def clamp_roi(min_x: float, min_y: float, max_x: float, max_y: float, cols: int, rows: int) -> Roi:
    """Clamp a bounding box into the frame.

    Origin is clipped to ``[0, dim - 2]``, the far edge to ``dim - 1``, and
    width/height are kept at least 1.
    """
    if cols < 2 or rows < 2:
        return NO_ROI

    x = min(max(int(min_x), 0), cols - 2)
    y = min(max(int(min_y), 0), rows - 2)
    far_x = min(int(max_x), cols - 1)
    far_y = min(int(max_y), rows - 1)

    width = max(1, far_x - x)
    height = max(1, far_y - y)
    return Roi(x, y, width, height)


def roi_from_projection(projected: np.ndarray, cols: int, rows: int) -> Roi:
    pts = np.asarray(projected, dtype=np.float64).reshape(-1, 2)
    if pts.size == 0 or not np.all(np.isfinite(pts)):
        return NO_ROI
    min_x, min_y = pts.min(axis=0)
    max_x, max_y = pts.max(axis=0)
    return clamp_roi(min_x, min_y, max_x, max_y, cols, rows)


def predict_roi(
    obj_points: np.ndarray,
    head_offset: Sequence[float],
    pose: Pose,
    intrinsics: CameraIntrinsics,
    cols: int,
    rows: int,
    search_window: float = SEARCH_WINDOW,
) -> Roi:
    """Next frame's search rectangle from the pose just solved."""
    offset = np.asarray(head_offset, dtype=np.float64).reshape(1, 3)
    scaled = (np.asarray(obj_points, dtype=np.float64) - offset) * search_window
    projected = project(scaled, pose.rvec, pose.tvec, intrinsics)
    return roi_from_projection(projected, cols, rows)
