from __future__ import annotations

import contextlib
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional, Tuple

import cv2
import numpy as np

from .config import TrackerConfig
from .detect import MarkerDetector
from .display import annotate
from .frame_source import (
    CameraOpenError,
    DeviceCameraSource,
    FrameSource,
    SyntheticSource,
    render_marker_frame,
)
from .hp_types import NO_ROI, CameraIntrinsics, Roi, TrackResult, TrackStatus
from .logging_utils import add_file_handler, setup_logger
from .pose import PnPSolver
from .rate import RateEstimator
from .roi import predict_roi
from .state import Channels, SharedPoseState
from .transforms import intrinsics_from_fov, object_points

# pause after an empty read so a dead device does not spin the CPU
NO_FRAME_BACKOFF_SEC = 0.001


@dataclass
class TrackerSummary:
    frames: int
    tracked: int
    not_found: int
    no_pose: int
    no_frame: int
    avg_fps: float


class Tracker(ABC):
    """Capability every tracker variant offers to the rest of the program."""

    logger: logging.Logger = logging.getLogger("headtrack")
    summary: Optional[TrackerSummary] = None

    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def stop(self) -> None: ...

    @property
    @abstractmethod
    def running(self) -> bool: ...

    @abstractmethod
    def data(self) -> Channels: ...

    @abstractmethod
    def rt(self) -> Tuple[np.ndarray, np.ndarray]:
        """Copy of the raw rotation matrix and translation vector."""


class ArucoTracker(Tracker):
    def __init__(
        self,
        config: TrackerConfig,
        logger=None,
        source: Optional[FrameSource] = None,
        frame_sink: Optional[Callable[[np.ndarray], Any]] = None,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        self.config = config
        self.logger = logger or setup_logger(config.camera_name, config.tracker)
        if config.log_file:
            add_file_handler(self.logger, config.camera_name, config.log_file, config.tracker)

        self.source = source
        self._injected_source = source is not None
        self.frame_sink = frame_sink
        self._sleep = sleep

        self.state = SharedPoseState()
        self.rate = RateEstimator()
        self.detector = MarkerDetector(config.aruco_dict, config.size_min, config.size_max)
        self.solver = PnPSolver()
        self.roi: Roi = NO_ROI
        self.summary: Optional[TrackerSummary] = None

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._opened = False
        self._tracking = False

    # -- lifecycle ---------------------------------------------------------

    def _build_source(self) -> FrameSource:
        # camera settings are picked up again on every open
        if self._injected_source:
            return self.source
        w, h = self.config.resolution_hint
        if self.config.dry_run:
            frame = render_marker_frame(w or 640, h or 480, dict_name=self.config.aruco_dict)
            return SyntheticSource([frame], loop=True)
        return DeviceCameraSource(self.config.camera_name, w, h, self.config.fps_hint)

    def open(self) -> None:
        """Open the camera. Raises CameraOpenError; the loop never starts then."""
        if self._opened:
            return
        self.source = self._build_source()
        try:
            self.source.start()
        except CameraOpenError:
            self.logger.error("can't open camera %r", self.config.camera_name)
            raise
        self._opened = True
        self.logger.info("config: %s", self.config.as_dict())

    def start(self) -> None:
        if self._thread is not None:
            return
        self.open()
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, name="aruco-tracker", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        elif self._opened:
            self._release()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _release(self) -> None:
        # fast stop/start cycles break some camera drivers
        if self.config.release_delay_sec > 0:
            self._sleep(self.config.release_delay_sec)
        if self.source is not None:
            self.source.stop()
        self._opened = False

    # -- pose access -------------------------------------------------------

    def data(self) -> Channels:
        return self.state.data()

    def rt(self):
        return self.state.rt()

    @contextlib.contextmanager
    def camera(self) -> Iterator[Any]:
        """Device handle for property pages, held under the camera lock."""
        if self.source is None or not self._opened:
            yield None
            return
        with self.source.locked() as handle:
            yield handle

    # -- loop --------------------------------------------------------------

    def run(self) -> TrackerSummary:
        self.open()
        counts: Counter = Counter()
        frames = 0
        t0 = time.perf_counter()
        self.rate.start()
        self.logger.info("tracker started")

        try:
            while not self._stop_event.is_set():
                if self.config.max_frames and frames >= self.config.max_frames:
                    break
                result = self.step()
                counts[result.status] += 1
                if result.status is TrackStatus.NO_FRAME:
                    self._stop_event.wait(NO_FRAME_BACKOFF_SEC)
                    continue
                frames += 1
        finally:
            self._release()

        elapsed = max(1e-6, time.perf_counter() - t0)
        self.summary = TrackerSummary(
            frames=frames,
            tracked=counts[TrackStatus.TRACKED],
            not_found=counts[TrackStatus.NOT_FOUND],
            no_pose=counts[TrackStatus.NO_POSE],
            no_frame=counts[TrackStatus.NO_FRAME],
            avg_fps=frames / elapsed,
        )
        self.logger.info(
            "summary frames=%d tracked=%d avg_fps=%.2f no_frame=%d",
            frames, self.summary.tracked, self.summary.avg_fps, self.summary.no_frame,
        )
        return self.summary

    def step(self) -> TrackResult:
        """One acquire -> detect -> solve -> predict iteration."""
        frame = self.source.read() if self.source is not None else None
        if frame is None:
            return TrackResult(TrackStatus.NO_FRAME)

        color = frame.image
        if color.ndim == 2:
            gray = color
            color = cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)
        else:
            gray = cv2.cvtColor(color, cv2.COLOR_BGR2GRAY)
        frame.gray = gray
        rows, cols = gray.shape[:2]

        # settings may change between frames
        head_offset = tuple(self.config.head_offset)
        self.detector.size_min = self.config.size_min
        self.detector.size_max = self.config.size_max
        intrinsics = intrinsics_from_fov(cols, rows, self.config.fov)
        obj = object_points(head_offset)

        self.rate.tick()

        result = self._detect_and_solve(gray, obj, intrinsics)
        if result.ok:
            self.roi = predict_roi(obj, head_offset, result.pose, intrinsics, cols, rows)
            self.state.publish(result.pose)
        else:
            self.roi = NO_ROI

        if result.ok != self._tracking:
            self._tracking = result.ok
            if result.ok:
                self.logger.info("marker acquired at frame %d", frame.idx)
            else:
                self.logger.info("marker lost at frame %d (%s)", frame.idx, result.status.value)

        if self.frame_sink is not None:
            self.frame_sink(self._draw(color, result, intrinsics))

        return result

    def _detect_and_solve(self, gray: np.ndarray, obj: np.ndarray, intrinsics: CameraIntrinsics) -> TrackResult:
        corners, _via_roi = self.detector.detect(gray, self.roi)
        if corners is None:
            return TrackResult(TrackStatus.NOT_FOUND)
        pose = self.solver.solve(obj, corners, intrinsics)
        if pose is None:
            return TrackResult(TrackStatus.NO_POSE, corners=corners)
        return TrackResult(TrackStatus.TRACKED, corners=corners, pose=pose)

    def _draw(self, color: np.ndarray, result: TrackResult, intrinsics: CameraIntrinsics) -> np.ndarray:
        return annotate(color.copy(), result.corners, result.pose, intrinsics, self.rate.freq)
