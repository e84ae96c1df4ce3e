import numpy as np
import pytest

from headtrack.hp_types import NO_ROI, Pose, Roi
from headtrack.roi import SEARCH_WINDOW, clamp_roi, predict_roi, roi_from_projection
from headtrack.transforms import intrinsics_from_fov, object_points, project


def test_clamped_roi_invariants_hold_for_random_boxes():
    rng = np.random.default_rng(1234)
    for _ in range(2000):
        cols, rows = (int(v) for v in rng.integers(2, 2000, size=2))
        a = rng.uniform(-3000, 5000, size=2)
        b = rng.uniform(-3000, 5000, size=2)
        lo, hi = np.minimum(a, b), np.maximum(a, b)

        roi = clamp_roi(lo[0], lo[1], hi[0], hi[1], cols, rows)

        assert roi.x >= 0 and roi.y >= 0
        assert 1 <= roi.width <= cols - 1
        assert 1 <= roi.height <= rows - 1
        assert roi.x + roi.width <= cols - 1
        assert roi.y + roi.height <= rows - 1


def test_clamp_keeps_box_inside_frame_unchanged():
    assert clamp_roi(10, 20, 110, 220, 640, 480) == Roi(10, 20, 100, 200)


def test_clamp_clips_edges():
    assert clamp_roi(-50, -10, 700, 500, 640, 480) == Roi(0, 0, 639, 479)
    # box fully right of the frame collapses to a 1-px strip at the edge
    assert clamp_roi(900, 100, 1000, 200, 640, 480) == Roi(638, 100, 1, 100)


def test_degenerate_frames_and_projections_give_sentinel():
    assert clamp_roi(0, 0, 10, 10, 1, 480) == NO_ROI
    assert roi_from_projection(np.array([[np.nan, 1.0], [2.0, 3.0]]), 640, 480) == NO_ROI
    assert roi_from_projection(np.zeros((0, 2)), 640, 480) == NO_ROI


def test_sentinel_is_invalid():
    assert not NO_ROI.is_valid
    assert not NO_ROI.fits(640, 480)
    assert Roi(0, 0, 2, 2).is_valid
    assert not Roi(0, 0, 1, 50).is_valid


def _pose(rvec, tvec):
    import cv2

    rvec = np.asarray(rvec, dtype=np.float64).reshape(3, 1)
    tvec = np.asarray(tvec, dtype=np.float64).reshape(3, 1)
    R, _ = cv2.Rodrigues(rvec)
    return Pose(rvec, tvec, R, 0, 0, 0, 0, 0, 0)


@pytest.mark.parametrize(
    "rvec, tvec",
    [
        ([0.0, 0.0, 0.0], [0.0, 0.0, 500.0]),
        ([0.2, -0.1, 0.3], [-60.0, 40.0, 700.0]),
    ],
)
def test_predicted_roi_covers_marker(rvec, tvec):
    K = intrinsics_from_fov(640, 480, 56.0)
    obj = object_points((0.0, 0.0, 0.0))
    pose = _pose(rvec, tvec)
    corners = project(obj, pose.rvec, pose.tvec, K)

    roi = predict_roi(obj, (0.0, 0.0, 0.0), pose, K, 640, 480)

    assert roi.is_valid
    assert np.all(corners[:, 0] >= roi.x) and np.all(corners[:, 0] <= roi.x + roi.width)
    assert np.all(corners[:, 1] >= roi.y) and np.all(corners[:, 1] <= roi.y + roi.height)


def test_predicted_roi_is_inflated_by_search_window():
    K = intrinsics_from_fov(640, 480, 56.0)
    obj = object_points((0.0, 0.0, 0.0))
    pose = _pose([0.0, 0.0, 0.0], [0.0, 0.0, 500.0])
    corners = project(obj, pose.rvec, pose.tvec, K)
    marker_w = corners[:, 0].max() - corners[:, 0].min()

    roi = predict_roi(obj, (0.0, 0.0, 0.0), pose, K, 640, 480)

    assert roi.width == pytest.approx(marker_w * SEARCH_WINDOW, abs=2)


def test_predicted_roi_removes_head_offset():
    K = intrinsics_from_fov(640, 480, 56.0)
    offset = (0.0, 0.0, 250.0)
    pose = _pose([0.0, 0.0, 0.0], [0.0, 0.0, 500.0])

    with_offset = predict_roi(object_points(offset), offset, pose, K, 640, 480)
    without = predict_roi(object_points((0.0, 0.0, 0.0)), (0.0, 0.0, 0.0), pose, K, 640, 480)

    assert with_offset == without
