import csv
import json
import os
import tempfile
from argparse import Namespace
from pathlib import Path

import numpy as np
import pytest

from helpers_mesh import nose_mesh

from face_landmarks.analyze import analyze_frames, load_frames, main
from face_landmarks.config import DEFAULT_CONFIG, load_config, merge_config, str2bool
from face_landmarks.indices_mediapipe import MAX_MESH_POINT
from face_landmarks.landmarks import EmptyDetectionPolicy


def _frames_array():
    left = np.asarray([p[:2] for p in nose_mesh(3.0, 1.0).points], dtype=np.float32)
    center = np.asarray([p[:2] for p in nose_mesh(1.0, 1.0).points], dtype=np.float32)
    missing = np.full((MAX_MESH_POINT, 2), -1.0, dtype=np.float32)
    return np.stack([left, center, missing, center])


def test_analyze_npy_counts_directions(capsys):
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "frames.npy")
        np.save(path, _frames_array())
        code = main([path, "--config", os.path.join(tmp, "missing.yaml"), "--readout_interval", "2"])
    assert code == 0
    out = capsys.readouterr().out
    assert "4 frames" in out
    assert "center=2" in out
    assert "left=1" in out
    assert "no_face=1" in out
    assert 'direction {"left_nose_area": "1.0"' in out


def test_strict_policy_skips_missing_frames(capsys):
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "frames.npy")
        np.save(path, _frames_array())
        code = main([path, "--config", "", "--policy", "strict", "--summary_only", "true"])
    assert code == 0
    out = capsys.readouterr().out
    assert "skipped=1" in out
    assert "direction {" not in out


def test_analyze_csv_export():
    arr = _frames_array()
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "landmarks.csv")
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            header = ["idx", "class_id", "height", "width"]
            for i in range(MAX_MESH_POINT):
                header.extend([f"lm_{i}_x", f"lm_{i}_y"])
            writer.writerow(header)
            for n, frame in enumerate(arr):
                writer.writerow([n, "person_0", 480, 640] + frame.flatten().tolist())
        frames = load_frames(Path(path), dict(DEFAULT_CONFIG))
    counts = analyze_frames(frames, show_readouts=False)
    assert counts == {"left": 1, "center": 2, "no_face": 1}


def test_analyze_json_keypoints():
    face = {"keypoints": [{"x": p.x, "y": p.y} for p in nose_mesh(1.0, 5.0).points]}
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "faces.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump([[face], None, [], {"keypoints": []}], f)
        cfg = merge_config(load_config(None), Namespace(detector="keypoints"))
        frames = load_frames(Path(path), cfg)
    assert cfg["empty_detection_policy"] is EmptyDetectionPolicy.LENIENT
    counts = analyze_frames(frames, policy=cfg["empty_detection_policy"], show_readouts=False)
    assert counts == {"right": 1, "no_face": 2, "skipped": 1}


def test_short_mesh_is_unreadable(capsys):
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "subset.npy")
        np.save(path, np.zeros((18, 2), dtype=np.float32))
        code = main([path, "--config", ""])
    assert code == 2
    assert "need at least 468" in capsys.readouterr().err


def test_config_yaml_and_overrides():
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "config.yaml")
        with open(path, "w", encoding="utf-8") as f:
            f.write("factor: 2.5\ndetector: scaled_mesh\nimage_size: [480, 640]\n")
        cfg = load_config(path)
    assert cfg["factor"] == 2.5
    assert cfg["empty_detection_policy"] is EmptyDetectionPolicy.STRICT
    assert cfg["image_size"] == (480, 640)
    cfg = merge_config(cfg, Namespace(factor=4, policy="lenient", detector=None, digits=None, readout_interval=None))
    assert cfg["factor"] == 4.0
    assert cfg["empty_detection_policy"] is EmptyDetectionPolicy.LENIENT


@pytest.mark.parametrize("bad", [{"factor": 1}, {"policy": "sometimes"}, {"detector": "webcam"}])
def test_invalid_config_values(bad):
    with pytest.raises(ValueError):
        merge_config(dict(DEFAULT_CONFIG), Namespace(**bad))


def test_str2bool():
    assert str2bool("Yes")
    assert not str2bool("false")


def test_strict_skipped_frames_advance_readouts(capsys):
    face = np.asarray([p[:2] for p in nose_mesh(1.0, 1.0).points], dtype=np.float32)
    missing = np.full((MAX_MESH_POINT, 2), -1.0, dtype=np.float32)
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "frames.npy")
        np.save(path, np.stack([missing, face, missing, face]))
        code = main([path, "--config", "", "--policy", "strict", "--readout_interval", "2"])
    assert code == 0
    out = capsys.readouterr().out
    assert out.count("direction {") == 2
    assert "skipped=2" in out


def test_nan_landmarks_are_unreadable(capsys):
    arr = _frames_array()
    arr[1, 5, 0] = np.nan
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "frames.npy")
        np.save(path, arr)
        code = main([path, "--config", ""])
    assert code == 2
    captured = capsys.readouterr()
    assert "non-finite" in captured.err
    assert "nan" not in captured.out


def test_analyze_json_scaled_mesh(capsys):
    mesh = [[p.x, p.y, 0.0] for p in nose_mesh(3.0, 1.0).points]
    frames = [
        {"kind": "MediaPipePredictionValues", "scaledMesh": mesh},
        None,
        {"kind": "AnnotatedPrediction", "scaledMesh": mesh},
    ]
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "predictions.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(frames, f)
        code = main([path, "--config", "", "--detector", "scaled_mesh", "--summary_only", "true"])
    assert code == 0
    out = capsys.readouterr().out
    assert "3 frames" in out
    assert "left=1" in out
    assert "skipped=2" in out


def test_mediapipe_is_not_a_file_detector():
    with pytest.raises(ValueError):
        merge_config(dict(DEFAULT_CONFIG), Namespace(detector="mediapipe"))


@pytest.mark.parametrize(
    "yaml_text, extra",
    [
        ("factor: abc\n", []),
        ("image_size: 480\n", []),
        ("- 1\n- 2\n", []),
        ("", ["--digits", "-1"]),
        ("", ["--readout_interval", "0"]),
        ("", ["--factor", "nan"]),
    ],
)
def test_bad_configuration_exits_cleanly(capsys, yaml_text, extra):
    with tempfile.TemporaryDirectory() as tmp:
        cfg_path = os.path.join(tmp, "config.yaml")
        with open(cfg_path, "w", encoding="utf-8") as f:
            f.write(yaml_text)
        path = os.path.join(tmp, "frames.npy")
        np.save(path, _frames_array())
        code = main([path, "--config", cfg_path] + extra)
    assert code == 2
    assert "invalid configuration" in capsys.readouterr().err
