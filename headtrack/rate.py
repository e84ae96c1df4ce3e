from __future__ import annotations

import time
from typing import Callable, Optional


class RateEstimator:
    """Exponentially smoothed frames-per-second, for display only.

    ``bias`` compensates the lag of the smoothing so a steady stream of
    frames at interval ``d`` reads as ``1/d + bias``.
    """

    RC = 0.25
    BIAS = 0.8
    MIN_DT = 1e-3

    def __init__(self, clock: Callable[[], float] = time.perf_counter):
        self._clock = clock
        self._last: Optional[float] = None
        self.freq = 0.0

    def start(self) -> None:
        self._last = self._clock()

    def tick(self) -> float:
        now = self._clock()
        if self._last is None:
            self._last = now
            return self.freq
        dt = now - self._last
        self._last = now
        return self.update(dt)

    def update(self, dt: float) -> float:
        alpha = dt / (dt + self.RC)
        if dt > self.MIN_DT:
            self.freq = self.freq * (1.0 - alpha) + alpha * (1.0 / dt + self.BIAS)
        return self.freq
