import json
from pathlib import Path

import pytest

from headtrack.config import FPS_CHOICES, RESOLUTION_CHOICES, TrackerConfig, load_config


def test_load_config_json(tmp_path: Path):
    cfg_path = tmp_path / "tracker.json"
    cfg_path.write_text(
        json.dumps(
            {
                "camera_name": "/dev/video2",
                "resolution": 1,
                "fps": 2,
                "fov": 75,
                "head_offset": [1.5, -2, 90],
                "aruco_dict": "5x5_50",
                "max_frames": 10,
            }
        ),
        encoding="utf-8",
    )

    cfg = load_config(cfg_path)
    assert cfg.camera_name == "/dev/video2"
    assert cfg.resolution_hint == (320, 240)
    assert cfg.fps_hint == 60
    assert cfg.fov == 75.0
    assert cfg.head_offset == (1.5, -2.0, 90.0)
    assert cfg.aruco_dict == "5x5_50"
    assert cfg.max_frames == 10

    cfg.apply_overrides(camera_name="1", fov=None)
    assert cfg.camera_name == "1"
    assert cfg.fov == 75.0


def test_load_config_yaml(tmp_path: Path):
    cfg_path = tmp_path / "tracker.yaml"
    cfg_path.write_text(
        "camera_name: cam\nhead_offset: {x: 3, y: 4, z: 5}\nrelease_delay_sec: 0\n",
        encoding="utf-8",
    )

    cfg = load_config(cfg_path)
    assert cfg.camera_name == "cam"
    assert cfg.head_offset == (3.0, 4.0, 5.0)
    assert cfg.release_delay_sec == 0.0


def test_load_config_missing(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.json")


def test_load_config_rejects_bad_values(tmp_path: Path):
    cfg_path = tmp_path / "bad.json"
    cfg_path.write_text(json.dumps({"head_offset": [1, 2]}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(cfg_path)

    cfg_path.write_text(json.dumps({"size_min": 0.5, "size_max": 0.1}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(cfg_path)

    cfg_path.write_text(json.dumps([1, 2, 3]), encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(cfg_path)


def test_out_of_range_choices_fall_back_to_first():
    cfg = TrackerConfig(resolution=99, fps=-1)
    assert cfg.resolution_hint == RESOLUTION_CHOICES[0]
    assert cfg.fps_hint == FPS_CHOICES[0]


def test_config_defaults():
    cfg = TrackerConfig()
    assert cfg.tracker == "aruco"
    assert cfg.head_offset == (0.0, 0.0, 0.0)
    assert FPS_CHOICES == [0, 30, 60, 75, 125, 200]
    assert cfg.as_dict()["fov"] == cfg.fov
