from unittest.mock import patch

import numpy as np
import pytest

from headtrack import pose as pose_mod
from headtrack.pose import PnPSolver
from headtrack.transforms import intrinsics_from_fov, object_points, project


@pytest.fixture
def intrinsics():
    return intrinsics_from_fov(640, 480, 56.0)


def test_solver_recovers_known_pose(intrinsics):
    rvec = np.array([0.1, -0.2, 0.05])
    tvec = np.array([20.0, -10.0, 600.0])
    obj = object_points((0.0, 0.0, 0.0))
    corners = project(obj, rvec, tvec, intrinsics).astype(np.float32)

    pose = PnPSolver().solve(obj, corners, intrinsics)

    assert pose is not None
    assert np.allclose(pose.rvec.ravel(), rvec, atol=1e-3)
    assert np.allclose(pose.tvec.ravel(), tvec, atol=0.1)
    assert np.allclose(pose.rotation @ pose.rotation.T, np.eye(3), atol=1e-9)
    assert pose.tx == pytest.approx(2.0, abs=0.01)
    assert pose.ty == pytest.approx(1.0, abs=0.01)
    assert pose.tz == pytest.approx(60.0, abs=0.01)


def test_solver_with_head_offset_places_origin_at_pivot(intrinsics):
    offset = (0.0, 0.0, 100.0)
    rvec = np.array([0.0, 0.3, 0.0])
    tvec = np.array([0.0, 0.0, 700.0])
    obj = object_points(offset)
    corners = project(obj, rvec, tvec, intrinsics).astype(np.float32)

    pose = PnPSolver().solve(obj, corners, intrinsics)

    assert pose is not None
    assert np.allclose(pose.tvec.ravel(), tvec, atol=0.5)


def test_solver_reports_non_convergence(intrinsics):
    obj = object_points((0.0, 0.0, 0.0))
    corners = np.zeros((4, 2), dtype=np.float32)
    with patch.object(pose_mod.cv2, "solvePnP", return_value=(False, np.zeros((3, 1)), np.zeros((3, 1)))):
        assert PnPSolver().solve(obj, corners, intrinsics) is None


def test_solver_rejects_non_finite_result(intrinsics):
    obj = object_points((0.0, 0.0, 0.0))
    corners = np.zeros((4, 2), dtype=np.float32)
    bad = np.full((3, 1), np.nan)
    with patch.object(pose_mod.cv2, "solvePnP", return_value=(True, bad, bad)):
        assert PnPSolver().solve(obj, corners, intrinsics) is None


def test_solver_rejects_wrong_point_count(intrinsics):
    obj = object_points((0.0, 0.0, 0.0))
    assert PnPSolver().solve(obj, np.zeros((3, 2)), intrinsics) is None
