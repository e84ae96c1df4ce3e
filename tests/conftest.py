import cv2
import numpy as np
import pytest

from headtrack.config import TrackerConfig
from headtrack.detect import get_dict
from headtrack.frame_source import render_marker_frame


@pytest.fixture
def marker_frame():
    """640x480 BGR frame with one 120 px marker centred at (320, 240)."""
    return render_marker_frame(640, 480, side=120)


@pytest.fixture
def blank_frame():
    return np.full((480, 640, 3), 255, dtype=np.uint8)


@pytest.fixture
def two_marker_frame():
    """Two different markers side by side; ambiguous for a single-marker tracker."""
    canvas = np.full((480, 640), 255, dtype=np.uint8)
    dictionary = get_dict("4x4_50")
    for marker_id, x0 in ((0, 100), (1, 420)):
        marker = cv2.aruco.generateImageMarker(dictionary, marker_id, 120)
        canvas[180:300, x0:x0 + 120] = marker
    return cv2.cvtColor(canvas, cv2.COLOR_GRAY2BGR)


@pytest.fixture
def fast_config():
    return TrackerConfig(camera_name="test", release_delay_sec=0.0)
