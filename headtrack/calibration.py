"""Head-offset calibration.

While the user turns their head about its natural pivot, every sample obeys

    t_k = R_k @ d + c

where ``R_k, t_k`` is the marker pose in camera coordinates, ``d`` is the
marker centre relative to the pivot (in marker coordinates) and ``c`` is the
pivot in camera coordinates. Stacking ``[R_k | I] @ [d; c] = t_k`` over all
samples and solving in the least-squares sense yields ``d``, which becomes the
configured head offset.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

import numpy as np

logger = logging.getLogger(__name__)


class CalibrationAccumulator:
    """Idle/accumulating sampler that fits the head offset on stop."""

    def __init__(self) -> None:
        self._rotations: list[np.ndarray] = []
        self._translations: list[np.ndarray] = []
        self._estimate = np.zeros(3)
        self.active = False

    def start(self) -> None:
        self._rotations.clear()
        self._translations.clear()
        self._estimate = np.zeros(3)
        self.active = True

    def update(self, R: np.ndarray, t: np.ndarray) -> None:
        if not self.active:
            return
        self._rotations.append(np.array(R, dtype=np.float64).reshape(3, 3))
        self._translations.append(np.array(t, dtype=np.float64).reshape(3))

    def stop(self) -> np.ndarray:
        self.active = False
        self._estimate = self._fit()
        return self.estimate()

    def estimate(self) -> np.ndarray:
        return self._estimate.copy()

    @property
    def sample_count(self) -> int:
        return len(self._rotations)

    def _fit(self) -> np.ndarray:
        n = len(self._rotations)
        if n == 0:
            return np.zeros(3)

        H = np.zeros((3 * n, 6))
        y = np.zeros(3 * n)
        for k, (R, t) in enumerate(zip(self._rotations, self._translations)):
            H[3 * k:3 * k + 3, :3] = R
            H[3 * k:3 * k + 3, 3:] = np.eye(3)
            y[3 * k:3 * k + 3] = t

        x, _res, rank, _sv = np.linalg.lstsq(H, y, rcond=None)
        if rank < 6:
            logger.warning(
                "calibration is under-determined (rank %d from %d samples); "
                "rotate the head more while calibrating", rank, n,
            )
        return x[:3]


class CalibrationController:
    """Runs the accumulator on its own timer thread.

    Starting zeroes ``config.head_offset`` so samples are taken against the
    bare marker; stopping fits and writes the result back into the config.
    ``pose_source`` only needs an ``rt()`` method returning copies.
    """

    def __init__(self, pose_source: Any, config: Any, interval_sec: float = 0.25):
        self.pose_source = pose_source
        self.config = config
        self.interval_sec = interval_sec
        self.accumulator = CalibrationAccumulator()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def active(self) -> bool:
        return self._thread is not None

    def start(self) -> None:
        if self._thread is not None:
            return
        self.config.head_offset = (0.0, 0.0, 0.0)
        self.accumulator.start()
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="calibration", daemon=True)
        self._thread.start()
        logger.info("calibration started (every %.0f ms)", self.interval_sec * 1000)

    def stop(self) -> np.ndarray:
        if self._thread is None:
            return self.accumulator.estimate()
        self._stop_event.set()
        self._thread.join()
        self._thread = None

        pos = self.accumulator.stop()
        self.config.head_offset = (float(pos[0]), float(pos[1]), float(pos[2]))
        logger.info(
            "calibration done: %d samples, head offset %.1f %.1f %.1f",
            self.accumulator.sample_count, *self.config.head_offset,
        )
        return pos

    def toggle(self) -> Optional[np.ndarray]:
        if self.active:
            return self.stop()
        self.start()
        return None

    def sample(self) -> None:
        R, t = self.pose_source.rt()
        self.accumulator.update(R, t)

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_sec):
            self.sample()
