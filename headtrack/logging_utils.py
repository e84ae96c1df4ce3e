import logging
import os


class TrackerNameFilter(logging.Filter):
    """Tags records with the tracker variant and the camera it reads."""

    def __init__(self, camera_name: str, tracker_name: str = "aruco"):
        super().__init__()
        self.camera_name = camera_name
        self.tracker_name = tracker_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.camera = self.camera_name
        record.tracker = self.tracker_name
        return True


_FORMAT = "%(asctime)s %(levelname)s [%(tracker)s:%(camera)s] %(message)s"


def _tagged(handler: logging.Handler, camera_name: str, tracker_name: str) -> logging.Handler:
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler.addFilter(TrackerNameFilter(camera_name, tracker_name))
    return handler


def setup_logger(camera_name: str, tracker_name: str = "aruco", level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(f"headtrack.{tracker_name}.{camera_name or 'default'}")
    logger.setLevel(level)

    if not logger.handlers:
        logger.addHandler(_tagged(logging.StreamHandler(), camera_name, tracker_name))

    return logger


def add_file_handler(
    logger: logging.Logger, camera_name: str, log_path: str, tracker_name: str = "aruco"
) -> None:
    # one handler per file even when several trackers share the logger
    path = os.path.abspath(log_path)
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == path:
            return
    logger.addHandler(_tagged(logging.FileHandler(path), camera_name, tracker_name))
