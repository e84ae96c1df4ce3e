"""Frame source abstraction for camera input.

Provides a unified interface for the tracker's frame inputs:
- Device cameras (USB/V4L2/DirectShow through OpenCV)
- Scripted synthetic frames (dry runs and tests)

Every ``read()`` and every external access to the device handle goes through
the source's camera lock, so a property page may adjust exposure or focus
while the tracker thread is running.
"""

from __future__ import annotations

import contextlib
import logging
import re
import threading
from abc import ABC, abstractmethod
from typing import Any, Iterable, Iterator, Optional

import cv2
import numpy as np

from .detect import get_dict
from .hp_types import Frame

logger = logging.getLogger(__name__)


class CameraOpenError(RuntimeError):
    """Raised when the camera device cannot be opened."""


def resolve_device(name: int | str) -> int | str:
    """Map a logical camera name to something ``cv2.VideoCapture`` accepts.

    Integers and digit strings become device indices, ``/dev/videoN`` becomes
    index ``N``; anything else (file path, URL, GStreamer pipeline) is passed
    through unchanged.
    """
    if isinstance(name, int):
        return name
    dev_str = str(name).strip()
    if dev_str.isdigit():
        return int(dev_str)
    match = re.match(r"^/dev/video(\d+)$", dev_str)
    if match:
        return int(match.group(1))
    return dev_str


class FrameSource(ABC):
    """Abstract base class for frame sources."""

    def __init__(self) -> None:
        self.camera_lock = threading.Lock()
        self.frame_id = 0

    @abstractmethod
    def _open(self) -> None: ...

    @abstractmethod
    def _grab(self) -> Optional[np.ndarray]: ...

    @abstractmethod
    def _release(self) -> None: ...

    @property
    @abstractmethod
    def handle(self) -> Any: ...

    def start(self) -> None:
        """Open the source. Raises CameraOpenError on failure."""
        with self.camera_lock:
            self._open()
            self.frame_id = 0

    def read(self) -> Frame | None:
        """Read the next frame, or None if the device has nothing for us."""
        with self.camera_lock:
            img = self._grab()
        if img is None or getattr(img, "size", 0) == 0:
            return None
        self.frame_id += 1
        return Frame(self.frame_id, img)

    def stop(self) -> None:
        with self.camera_lock:
            self._release()

    @contextlib.contextmanager
    def locked(self) -> Iterator[Any]:
        """Yield the live device handle while holding the camera lock."""
        with self.camera_lock:
            yield self.handle


class DeviceCameraSource(FrameSource):
    """Camera source wrapping ``cv2.VideoCapture``.

    Resolution and frame-rate are hints: ``(0, 0)`` and ``0`` keep the device
    defaults, and the device is free to ignore the rest.
    """

    def __init__(
        self,
        device: int | str,
        width: int = 0,
        height: int = 0,
        fps: int = 0,
        backend: int = cv2.CAP_ANY,
    ):
        super().__init__()
        self.device = resolve_device(device)
        self.width = width
        self.height = height
        self.fps = fps
        self.backend = backend
        self.cap: Any = None

    @property
    def handle(self) -> Any:
        return self.cap

    def _open(self) -> None:
        self.cap = cv2.VideoCapture(self.device, self.backend)

        if self.width and self.height:
            self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        if self.fps:
            self.cap.set(cv2.CAP_PROP_FPS, self.fps)

        if not self.cap.isOpened():
            self.cap.release()
            self.cap = None
            raise CameraOpenError(f"Failed to open camera: {self.device}")

        logger.info(
            "opened camera %s (requested %dx%d @ %d fps)",
            self.device, self.width, self.height, self.fps,
        )

    def _grab(self) -> Optional[np.ndarray]:
        if self.cap is None:
            return None
        ok, img = self.cap.read()
        if not ok:
            return None
        return img

    def _release(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None


class SyntheticSource(FrameSource):
    """Replays a scripted sequence of BGR images.

    ``None`` entries emulate a device that momentarily has no frame. With
    ``loop=True`` the sequence repeats forever, otherwise every read after the
    end returns None.
    """

    def __init__(self, images: Iterable[Optional[np.ndarray]], loop: bool = False):
        super().__init__()
        self.images = list(images)
        self.loop = loop
        self._pos = 0
        self.opened = False

    @property
    def handle(self) -> Any:
        return self

    def _open(self) -> None:
        self._pos = 0
        self.opened = True

    def _grab(self) -> Optional[np.ndarray]:
        if not self.opened or not self.images:
            return None
        if self._pos >= len(self.images):
            if not self.loop:
                return None
            self._pos = 0
        img = self.images[self._pos]
        self._pos += 1
        return img

    def _release(self) -> None:
        self.opened = False


def render_marker_frame(
    width: int = 640,
    height: int = 480,
    side: int = 120,
    center: Optional[tuple[float, float]] = None,
    dict_name: str = "4x4_50",
    marker_id: int = 0,
) -> np.ndarray:
    """Render a BGR frame with one upright marker on a white background.

    The marker is clipped at the frame border; a centre far outside the frame
    yields a blank frame.
    """
    dictionary = get_dict(dict_name)
    if hasattr(cv2.aruco, "generateImageMarker"):  # OpenCV >= 4.7
        marker = cv2.aruco.generateImageMarker(dictionary, marker_id, side)
    else:
        marker = cv2.aruco.drawMarker(dictionary, marker_id, side)

    canvas = np.full((height, width), 255, dtype=np.uint8)
    if center is None:
        center = (width / 2.0, height / 2.0)
    x0 = int(round(center[0] - side / 2.0))
    y0 = int(round(center[1] - side / 2.0))
    xs0, ys0 = max(x0, 0), max(y0, 0)
    xs1, ys1 = min(x0 + side, width), min(y0 + side, height)
    if xs1 > xs0 and ys1 > ys0:
        canvas[ys0:ys1, xs0:xs1] = marker[ys0 - y0:ys1 - y0, xs0 - x0:xs1 - x0]
    return cv2.cvtColor(canvas, cv2.COLOR_GRAY2BGR)
