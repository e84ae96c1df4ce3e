"""Camera and pose geometry for the head tracker."""

import math
from typing import Sequence, Tuple

import cv2
import numpy as np

from .hp_types import CameraIntrinsics

# half the marker side, in model units (millimetres)
MARKER_HALF_SIZE = 40.0

# published translation unit is a tenth of the model unit
TRANSLATION_SCALE = 0.1


def intrinsics_from_fov(width: int, height: int, diag_fov_deg: float) -> CameraIntrinsics:
    """
    Derive a pinhole camera matrix from a diagonal field of view.

    The diagonal FOV is split into horizontal and vertical FOVs using the
    frame's aspect ratio; the principal point is the frame centre.

    Args:
        width: Frame width in pixels
        height: Frame height in pixels
        diag_fov_deg: Diagonal field of view in degrees

    Returns:
        CameraIntrinsics for the frame
    """
    w, h = float(width), float(height)
    diag = math.radians(diag_fov_deg)
    fov_w = 2.0 * math.atan(math.tan(diag / 2.0) / math.sqrt(1.0 + (h / w) ** 2))
    fov_h = 2.0 * math.atan(math.tan(diag / 2.0) / math.sqrt(1.0 + (w / h) ** 2))
    fx = 0.5 * w / math.tan(0.5 * fov_w)
    fy = 0.5 * h / math.tan(0.5 * fov_h)
    return CameraIntrinsics(fx, fy, w / 2.0, h / 2.0)


def object_points(head_offset: Sequence[float], half_size: float = MARKER_HALF_SIZE) -> np.ndarray:
    """
    Build the 3-D marker model shifted by the head offset.

    Corner order is top-left, top-right, bottom-right, bottom-left as seen
    by the camera (x right, y down), matching the detector's corner order.

    Args:
        head_offset: (x, y, z) of the marker centre relative to the head pivot
        half_size: Half the marker side

    Returns:
        (4, 3) float32 array
    """
    hx, hy, hz = (float(v) for v in head_offset)
    s = float(half_size)
    return np.array(
        [
            [-s + hx, -s + hy, hz],
            [s + hx, -s + hy, hz],
            [s + hx, s + hy, hz],
            [-s + hx, s + hy, hz],
        ],
        dtype=np.float32,
    )


def project(points: np.ndarray, rvec: np.ndarray, tvec: np.ndarray, intrinsics: CameraIntrinsics) -> np.ndarray:
    """Project (N, 3) points to (N, 2) pixel coordinates, no distortion."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 1, 3)
    img, _ = cv2.projectPoints(
        pts,
        np.asarray(rvec, dtype=np.float64).reshape(3, 1),
        np.asarray(tvec, dtype=np.float64).reshape(3, 1),
        intrinsics.matrix,
        None,
    )
    return img.reshape(-1, 2)


def euler_from_rotation(R: np.ndarray) -> Tuple[float, float, float]:
    """RQ-decompose a rotation matrix into angles (degrees) about x, y, z."""
    angles = cv2.RQDecomp3x3(np.asarray(R, dtype=np.float64))[0]
    return float(angles[0]), float(angles[1]), float(angles[2])


def published_channels(R: np.ndarray, tvec: np.ndarray) -> Tuple[float, float, float, float, float, float]:
    """
    Map a camera-frame pose onto the six published channels.

    yaw = angle[1], pitch = -angle[0], roll = angle[2];
    translation is (tx, -ty, tz) scaled to the published unit.
    """
    ax, ay, az = euler_from_rotation(R)
    t = np.asarray(tvec, dtype=np.float64).reshape(3)
    return (
        ay,
        -ax,
        az,
        float(t[0]) * TRANSLATION_SCALE,
        -float(t[1]) * TRANSLATION_SCALE,
        float(t[2]) * TRANSLATION_SCALE,
    )
