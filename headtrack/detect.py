from __future__ import annotations

import logging
from typing import Any, Optional

import cv2
import numpy as np

from .hp_types import Roi

logger = logging.getLogger(__name__)

# hard limits for the marker side as a fraction of the searched image
SIZE_FLOOR = 0.01
SIZE_CEIL = 1.0


def get_dict(name: str):
    """
    ArUco dictionary resolver.
    Falls back to 4x4_50 if name not recognized.
    Works on OpenCV >= 4.7 (getPredefinedDictionary) and older (Dictionary_get).
    """
    key = (name or "").strip().lower()
    if key.startswith("dict_"):
        key = key[5:]
    table = {
        "4x4_50": cv2.aruco.DICT_4X4_50,
        "4x4_100": cv2.aruco.DICT_4X4_100,
        "5x5_50": cv2.aruco.DICT_5X5_50,
        "5x5_100": cv2.aruco.DICT_5X5_100,
        "6x6_50": cv2.aruco.DICT_6X6_50,
        "6x6_100": cv2.aruco.DICT_6X6_100,
        "7x7_50": cv2.aruco.DICT_7X7_50,
        "7x7_100": cv2.aruco.DICT_7X7_100,
        "original": cv2.aruco.DICT_ARUCO_ORIGINAL,
    }
    code = table.get(key, cv2.aruco.DICT_4X4_50)

    if hasattr(cv2.aruco, "getPredefinedDictionary"):  # OpenCV >= 4.7
        return cv2.aruco.getPredefinedDictionary(code)
    return cv2.aruco.Dictionary_get(code)


def make_params():
    """Create detector parameters across OpenCV versions."""
    if hasattr(cv2.aruco, "DetectorParameters_create"):
        return cv2.aruco.DetectorParameters_create()
    return cv2.aruco.DetectorParameters()


def clamp_size(value: float) -> float:
    return min(SIZE_CEIL, max(SIZE_FLOOR, value))


class MarkerDetector:
    """
    Finds the single square marker in a grayscale image.

    Size bounds are the accepted marker side length as a fraction of the
    searched image's largest dimension. OpenCV expresses the same bound as a
    perimeter rate, hence the factor of four.

    A detection only counts when exactly one candidate with exactly four
    corners is found; corners are returned as a (4, 2) float32 array in
    top-left, top-right, bottom-right, bottom-left order.
    """

    def __init__(self, dict_name: str = "4x4_50", size_min: float = 0.05, size_max: float = 0.3):
        self.dictionary = get_dict(dict_name)
        self.params = make_params()
        self.size_min = size_min
        self.size_max = size_max
        self._detector: Any = None
        # Prefer the newer ArucoDetector API if present
        if hasattr(cv2.aruco, "ArucoDetector"):
            self._detector = cv2.aruco.ArucoDetector(self.dictionary, self.params)

    def _set_size_bounds(self, size_min: float, size_max: float) -> None:
        self.params.minMarkerPerimeterRate = 4.0 * size_min
        self.params.maxMarkerPerimeterRate = 4.0 * size_max
        if self._detector is not None:
            self._detector.setDetectorParameters(self.params)

    def _find_one(self, image: np.ndarray, size_min: float, size_max: float) -> Optional[np.ndarray]:
        self._set_size_bounds(size_min, size_max)
        try:
            if self._detector is not None:
                corners, ids, _rej = self._detector.detectMarkers(image)
            else:
                corners, ids, _rej = cv2.aruco.detectMarkers(
                    image, self.dictionary, parameters=self.params
                )
        except cv2.error as exc:
            logger.debug("marker detection failed on %s image: %s", image.shape, exc)
            return None

        if ids is None or len(corners) != 1:
            return None
        pts = np.asarray(corners[0], dtype=np.float32).reshape(-1, 2)
        if pts.shape[0] != 4:
            return None
        return pts

    def detect_with_roi(self, gray: np.ndarray, roi: Roi) -> Optional[np.ndarray]:
        """Search only inside ``roi``; corners come back in full-frame coordinates."""
        rows, cols = gray.shape[:2]
        if not roi.fits(cols, rows):
            return None

        scale = cols / float(roi.width)
        size_min = clamp_size(self.size_min * scale)
        size_max = clamp_size(self.size_max * scale)

        crop = gray[roi.y:roi.y + roi.height, roi.x:roi.x + roi.width]
        pts = self._find_one(crop, size_min, size_max)
        if pts is None:
            return None
        pts[:, 0] += roi.x
        pts[:, 1] += roi.y
        return pts

    def detect_without_roi(self, gray: np.ndarray) -> Optional[np.ndarray]:
        return self._find_one(gray, self.size_min, self.size_max)

    def detect(self, gray: np.ndarray, roi: Roi) -> tuple[Optional[np.ndarray], bool]:
        """ROI-fast path first, full frame second.

        Returns ``(corners, via_roi)``; ``corners`` is None when both miss.
        """
        if roi.is_valid:
            pts = self.detect_with_roi(gray, roi)
            if pts is not None:
                return pts, True
        return self.detect_without_roi(gray), False
