"""Single-marker ArUco head tracker."""

from .config import TrackerConfig
from .factory import create_tracker
from .frame_source import CameraOpenError
from .tracker import ArucoTracker, Tracker

__all__ = ["ArucoTracker", "CameraOpenError", "Tracker", "TrackerConfig", "create_tracker"]
