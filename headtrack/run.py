import argparse
import signal
import sys
import time

import cv2

from .calibration import CalibrationController
from .config import TrackerConfig, load_config
from .display import LatestFrameSink
from .factory import create_tracker
from .frame_source import CameraOpenError


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Track a head-mounted ArUco marker")
    ap.add_argument("--config", help="Path to JSON/YAML config")

    ap.add_argument("--tracker")
    ap.add_argument("--camera-name")
    ap.add_argument("--resolution", type=int, help="0=640x480, 1=320x240, 2=device default")
    ap.add_argument("--fps", type=int, help="0=default, 1=30, 2=60, 3=75, 4=125, 5=200")
    ap.add_argument("--fov", type=float, help="Diagonal field of view in degrees")
    ap.add_argument("--head-offset", nargs=3, type=float, metavar=("X", "Y", "Z"))
    ap.add_argument("--dict")
    ap.add_argument("--log-file")
    ap.add_argument("--release-delay", type=float)
    ap.add_argument("--dry-run", action="store_true")
    ap.add_argument("--max-frames", type=int)
    ap.add_argument("--duration", type=float, help="Stop after this many seconds")
    ap.add_argument("--show", action="store_true", help="Open a preview window")
    ap.add_argument("--print-interval", type=float, default=1.0)
    ap.add_argument(
        "--calibrate",
        type=float,
        metavar="SECONDS",
        help="Run head-offset calibration for SECONDS, then print the offset",
    )

    return ap


def _apply_args(cfg: TrackerConfig, args: argparse.Namespace) -> TrackerConfig:
    cfg.apply_overrides(
        tracker=args.tracker,
        camera_name=args.camera_name,
        resolution=args.resolution,
        fps=args.fps,
        fov=args.fov,
        head_offset=tuple(args.head_offset) if args.head_offset else None,
        aruco_dict=args.dict,
        log_file=args.log_file,
        release_delay_sec=args.release_delay,
        dry_run=args.dry_run if args.dry_run else None,
        max_frames=args.max_frames,
    )
    return cfg


def main() -> int:
    ap = _build_parser()
    args = ap.parse_args()

    cfg = load_config(args.config) if args.config else TrackerConfig()
    cfg = _apply_args(cfg, args)

    sink = LatestFrameSink() if args.show else None
    tracker = create_tracker(cfg, frame_sink=sink)

    def _handle_signal(_sig, _frame):
        tracker.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle_signal)

    try:
        tracker.start()
    except CameraOpenError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    calib = None
    if args.calibrate:
        calib = CalibrationController(tracker, cfg)
        calib.start()

    t0 = time.monotonic()
    last_print = 0.0
    try:
        while tracker.running:
            now = time.monotonic()
            if args.duration and now - t0 >= args.duration:
                break
            if calib is not None and calib.active and now - t0 >= args.calibrate:
                pos = calib.stop()
                print("head_offset: %.1f %.1f %.1f" % tuple(pos))
                break
            if now - last_print >= args.print_interval:
                last_print = now
                yaw, pitch, roll, tx, ty, tz = tracker.data()
                tracker.logger.info(
                    "yaw=%.1f pitch=%.1f roll=%.1f x=%.1f y=%.1f z=%.1f",
                    yaw, pitch, roll, tx, ty, tz,
                )
            if sink is not None:
                frame = sink.take()
                if frame is not None:
                    cv2.imshow("headtrack", frame)
                if cv2.waitKey(1) & 0xFF == ord("q"):
                    break
            else:
                time.sleep(0.01)
    finally:
        if calib is not None and calib.active:
            calib.stop()
        tracker.stop()
        if sink is not None:
            cv2.destroyAllWindows()

    print(tracker.summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
