"""
Offline face box and direction readouts over exported FaceMesh landmarks.

Inputs are per-frame landmark exports:
  - .npy: one (N, 2|3) face or an (F, N, 2|3) stack of frames
  - .csv: one row per frame with lm_{i}_x / lm_{i}_y columns
  - .json: a list of frames, each a detector dump (or a list of faces, or null)
Rows filled with -1 mark frames where no face was found.

Run:
python -m face_landmarks.analyze landmarks.npy --factor 3
"""

from __future__ import annotations

import argparse
import csv
import json
import re
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import yaml
from tqdm import tqdm

from .config import DETECTORS, load_config, merge_config, str2bool
from .geometry import face_box, face_direction
from .indices_mediapipe import MAX_MESH_POINT
from .landmarks import ADAPTERS, Detection, EmptyDetectionPolicy, from_array
from .readout import ReadoutThrottle, to_readout

_CSV_COLUMN = re.compile(r"^lm_(\d+)_([xy])$")
MISSING_VALUE = -1.0


def _array_frame(pts: np.ndarray, image_size: Optional[Tuple[int, int]]) -> Optional[Detection]:
    if pts.size == 0 or np.all(pts == MISSING_VALUE):
        return None
    if image_size is not None:
        h, w = image_size
        pts = pts.astype(np.float64)
        pts[:, 0] *= w
        pts[:, 1] *= h
    return from_array(pts)


def load_npy(path: Path, image_size: Optional[Tuple[int, int]] = None) -> List[Optional[Detection]]:
    arr = np.load(path, allow_pickle=False)
    if arr.ndim == 2:
        arr = arr[None]
    if arr.ndim != 3:
        raise ValueError(f"{path}: expected (N, 2|3) or (F, N, 2|3) landmarks, got {arr.shape}")
    return [_array_frame(frame, image_size) for frame in arr]


def load_csv(path: Path, image_size: Optional[Tuple[int, int]] = None) -> List[Optional[Detection]]:
    frames: List[Optional[Detection]] = []
    with open(path, "r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        columns: Dict[int, Dict[str, str]] = {}
        for name in reader.fieldnames or []:
            match = _CSV_COLUMN.match(name)
            if match:
                columns.setdefault(int(match.group(1)), {})[match.group(2)] = name
        if not columns:
            raise ValueError(f"{path}: no lm_<i>_x / lm_<i>_y columns found")
        order = sorted(columns)
        if order != list(range(len(order))) or any(len(columns[i]) != 2 for i in order):
            raise ValueError(f"{path}: landmark columns must cover x and y for 0..{len(order) - 1}")
        for row in reader:
            pts = np.array(
                [[float(row[columns[i]["x"]]), float(row[columns[i]["y"]])] for i in order],
                dtype=np.float64,
            )
            frames.append(_array_frame(pts, image_size))
    return frames


def _json_frame(frame: Any, detector: str) -> Optional[Detection]:
    if frame is None:
        return None
    if detector == "array":
        return from_array(frame) if frame else None
    if isinstance(frame, list):
        # faces of one frame; only the first one is read out
        if not frame:
            return None
        frame = frame[0]
    return ADAPTERS[detector](frame)


def load_json(path: Path, detector: str) -> List[Optional[Detection]]:
    if detector not in ADAPTERS and detector != "array":
        raise ValueError(f"{path}: detector '{detector}' cannot read JSON dumps")
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of frames")
    return [_json_frame(frame, detector) for frame in data]


def load_frames(path: Path, cfg: Dict[str, Any]) -> List[Optional[Detection]]:
    suffix = path.suffix.lower()
    if suffix == ".npy":
        frames = load_npy(path, cfg["image_size"])
    elif suffix == ".csv":
        frames = load_csv(path, cfg["image_size"])
    elif suffix == ".json":
        frames = load_json(path, cfg["detector"])
    else:
        raise ValueError(f"{path}: unsupported landmark file type '{suffix}'")
    for idx, frame in enumerate(frames):
        if frame is not None and 0 < len(frame) < MAX_MESH_POINT:
            raise ValueError(f"{path}: frame {idx} has {len(frame)} points, need at least {MAX_MESH_POINT}")
    return frames


def analyze_frames(
    frames: Sequence[Optional[Detection]],
    factor: float = 3.0,
    policy: EmptyDetectionPolicy = EmptyDetectionPolicy.LENIENT,
    digits: int = 1,
    readout_interval: int = 10,
    show_readouts: bool = True,
    desc: str = "Frames",
) -> Counter:
    """Classify every frame and print throttled readouts. Returns direction counts."""
    counts: Counter = Counter()
    throttle = ReadoutThrottle(readout_interval)
    for frame in tqdm(frames, desc=desc, leave=False):
        # every input frame advances the throttle, skipped ones included
        due = throttle.tick()
        result = face_direction(frame, factor=factor, policy=policy)
        if result is None:
            counts["skipped"] += 1
            continue
        box = face_box(frame, policy=policy)
        counts[result.direction.value if box is not None else "no_face"] += 1
        if show_readouts and due:
            tqdm.write(f"box {to_readout(box, digits)}")
            tqdm.write(f"direction {to_readout(result, digits)}")
    return counts


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Face box and direction readouts from landmark exports")
    parser.add_argument("inputs", nargs="+", help="Landmark files (.npy, .csv, .json)")
    parser.add_argument("--config", type=str, default="config.yaml", help="Path to config YAML")
    parser.add_argument("--factor", type=float, default=None, help="Direction sensitivity, > 1")
    parser.add_argument("--policy", type=str, choices=["lenient", "strict"], default=None)
    parser.add_argument("--detector", type=str, choices=list(DETECTORS), default=None)
    parser.add_argument("--digits", type=int, default=None, help="Decimals in readouts")
    parser.add_argument("--readout_interval", type=int, default=None, help="Print readouts every N frames")
    parser.add_argument("--summary_only", type=str, default="false", help="true|false")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        cfg = merge_config(load_config(args.config), args)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"invalid configuration: {exc}", file=sys.stderr)
        return 2
    show_readouts = not str2bool(args.summary_only)
    total: Counter = Counter()
    for name in args.inputs:
        path = Path(name)
        try:
            frames = load_frames(path, cfg)
            counts = analyze_frames(
                frames,
                factor=cfg["factor"],
                policy=cfg["empty_detection_policy"],
                digits=cfg["digits"],
                readout_interval=cfg["readout_interval"],
                show_readouts=show_readouts,
                desc=path.name,
            )
        except (OSError, ValueError) as exc:
            print(f"could not read {path}: {exc}", file=sys.stderr)
            return 2
        print(f"{path}: {len(frames)} frames " + " ".join(f"{k}={v}" for k, v in sorted(counts.items())))
        total.update(counts)
    if len(args.inputs) > 1:
        print("total: " + " ".join(f"{k}={v}" for k, v in sorted(total.items())))
    return 0


if __name__ == "__main__":
    sys.exit(main())
