from __future__ import annotations

import threading
from typing import Tuple

import numpy as np

from .hp_types import Pose

Channels = Tuple[float, float, float, float, float, float]

# channel indices in the published six-tuple
YAW, PITCH, ROLL, TX, TY, TZ = range(6)


class SharedPoseState:
    """Latest published pose, guarded by one short-lived lock.

    The tracker thread writes once per tracked frame; readers get copies and
    never see the underlying arrays. Until the first write every channel is
    zero and the rotation is identity.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._channels: Channels = (0.0, 0.0, 0.0, 0.0, 0.0, 0.0)
        self._rotation = np.eye(3)
        self._translation = np.zeros(3)
        self._writes = 0

    def publish(self, pose: Pose) -> None:
        channels = tuple(float(v) for v in pose.channels())
        rotation = np.array(pose.rotation, dtype=np.float64).reshape(3, 3)
        translation = np.array(pose.tvec, dtype=np.float64).reshape(3)
        with self._lock:
            self._channels = channels  # type: ignore[assignment]
            self._rotation = rotation
            self._translation = translation
            self._writes += 1

    def data(self) -> Channels:
        with self._lock:
            return self._channels

    def rt(self) -> Tuple[np.ndarray, np.ndarray]:
        """Copy of the raw camera-frame rotation matrix and translation."""
        with self._lock:
            return self._rotation.copy(), self._translation.copy()

    @property
    def writes(self) -> int:
        with self._lock:
            return self._writes
