from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np

from .hp_types import CameraIntrinsics, Pose
from .transforms import published_channels

logger = logging.getLogger(__name__)


class PnPSolver:
    """Iterative PnP on the four marker corners, no lens distortion."""

    def solve(
        self,
        obj_points: np.ndarray,
        corners: np.ndarray,
        intrinsics: CameraIntrinsics,
    ) -> Optional[Pose]:
        obj = np.asarray(obj_points, dtype=np.float64).reshape(-1, 3)
        img = np.asarray(corners, dtype=np.float64).reshape(-1, 2)
        if obj.shape[0] != 4 or img.shape[0] != 4:
            return None

        try:
            ok, rvec, tvec = cv2.solvePnP(
                obj, img, intrinsics.matrix, None, flags=cv2.SOLVEPNP_ITERATIVE
            )
        except cv2.error as exc:
            logger.debug("solvePnP raised: %s", exc)
            return None

        if not ok or not (np.all(np.isfinite(rvec)) and np.all(np.isfinite(tvec))):
            return None

        R, _ = cv2.Rodrigues(rvec)
        yaw, pitch, roll, tx, ty, tz = published_channels(R, tvec)
        return Pose(
            rvec=rvec.reshape(3, 1),
            tvec=tvec.reshape(3, 1),
            rotation=R,
            yaw=yaw,
            pitch=pitch,
            roll=roll,
            tx=tx,
            ty=ty,
            tz=tz,
        )
