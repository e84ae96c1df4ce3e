"""Render a printable marker sheet matching the tracker's marker model.

The model assumes an 80 mm marker (black border included); printing the PNG
at the given DPI without scaling yields exactly that size.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import cv2
import numpy as np

from .detect import get_dict
from .transforms import MARKER_HALF_SIZE

MM_PER_INCH = 25.4


def printable_marker(
    dict_name: str = "4x4_50",
    marker_id: int = 0,
    side_mm: float = 2 * MARKER_HALF_SIZE,
    margin_mm: float = 10.0,
    dpi: int = 300,
) -> np.ndarray:
    """Marker image with a white quiet zone, sized for ``dpi``."""
    side_px = int(round(side_mm / MM_PER_INCH * dpi))
    margin_px = int(round(margin_mm / MM_PER_INCH * dpi))
    marker = cv2.aruco.generateImageMarker(get_dict(dict_name), marker_id, side_px)
    return cv2.copyMakeBorder(
        marker, margin_px, margin_px, margin_px, margin_px, cv2.BORDER_CONSTANT, value=255
    )


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate a printable head-tracking marker")
    parser.add_argument("--output", default="marker.png", help="Output PNG path")
    parser.add_argument("--dict", default="4x4_50", help="ArUco dictionary (default: 4x4_50)")
    parser.add_argument("--marker-id", type=int, default=0)
    parser.add_argument("--dpi", type=int, default=300)
    parser.add_argument("--margin-mm", type=float, default=10.0)
    args = parser.parse_args()

    img = printable_marker(args.dict, args.marker_id, margin_mm=args.margin_mm, dpi=args.dpi)
    out = Path(args.output)
    out.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(out), img):
        print(f"error: could not write {out}", file=sys.stderr)
        return 1
    print(f"wrote {out} ({img.shape[1]}x{img.shape[0]} px, print at {args.dpi} dpi)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
