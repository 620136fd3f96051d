"""
Adapters that normalize face-mesh detector output into `Detection` records.

Detectors disagree on point shape: some emit `[x, y, z]` tuples under
`scaledMesh`, others emit `{x, y, z}` records under `keypoints`, and the
MediaPipe Python solution emits normalized landmark objects. Each adapter
converts its shape into a tuple of `Point`s so the geometry code never has to
look at the raw detector output.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, NamedTuple, Optional, Sequence, Tuple

import numpy as np


class Point(NamedTuple):
    x: float
    y: float
    z: float = 0.0


class EmptyDetectionPolicy(str, Enum):
    """How a subset lookup treats a missing or empty detection.

    LENIENT: a missing detection (no face) selects nothing; a detection
    without points is an empty-detection failure.
    STRICT: both a missing detection and one without points fail.
    """

    LENIENT = "lenient"
    STRICT = "strict"


@dataclass(frozen=True)
class Detection:
    """Ordered mesh points of one detected face."""

    points: Tuple[Point, ...] = ()

    def __len__(self) -> int:
        return len(self.points)

    def __getitem__(self, idx: int) -> Point:
        return self.points[idx]


SCALED_MESH_KIND = "MediaPipePredictionValues"

# Policy that matches the behaviour callers of each detector shape expect.
DETECTOR_POLICIES: Dict[str, EmptyDetectionPolicy] = {
    "keypoints": EmptyDetectionPolicy.LENIENT,
    "scaled_mesh": EmptyDetectionPolicy.STRICT,
    "mediapipe": EmptyDetectionPolicy.LENIENT,
    "array": EmptyDetectionPolicy.LENIENT,
}


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def _finite_point(x: float, y: float, z: float = 0.0) -> Point:
    point = Point(float(x), float(y), float(z))
    if not np.isfinite(point).all():
        raise ValueError(f"Mesh point has non-finite coordinates: {point}")
    return point


def _point_from_record(record: Any) -> Point:
    x = _field(record, "x")
    y = _field(record, "y")
    if x is None or y is None:
        raise ValueError(f"Keypoint is missing x/y: {record!r}")
    z = _field(record, "z")
    return _finite_point(x, y, z if z is not None else 0.0)


def _point_from_tuple(coords: Sequence[float]) -> Point:
    if len(coords) < 2:
        raise ValueError(f"Mesh point needs at least 2 coordinates, got {len(coords)}")
    z = coords[2] if len(coords) > 2 else 0.0
    return _finite_point(coords[0], coords[1], z)


def from_keypoints(face: Any) -> Optional[Detection]:
    """Adapt a record-shaped face (`keypoints` of `{x, y, z}`)."""
    if face is None:
        return None
    keypoints = _field(face, "keypoints") or []
    return Detection(tuple(_point_from_record(kp) for kp in keypoints))


def from_scaled_mesh(prediction: Any) -> Optional[Detection]:
    """Adapt a tuple-shaped prediction (`scaledMesh` of `[x, y, z]`)."""
    if prediction is None:
        return None
    if _field(prediction, "kind") != SCALED_MESH_KIND:
        return Detection()
    mesh = _field(prediction, "scaledMesh")
    if mesh is None:
        return Detection()
    return Detection(tuple(_point_from_tuple(coords) for coords in mesh))


def from_mediapipe(face_landmarks: Any, image_size: Tuple[int, int]) -> Optional[Detection]:
    """
    Adapt a MediaPipe `NormalizedLandmarkList` to pixel coordinates.

    `image_size` is (height, width), matching `image.shape[:2]`.
    """
    if face_landmarks is None:
        return None
    h, w = image_size
    points = [_finite_point(lm.x * w, lm.y * h, lm.z * w) for lm in face_landmarks.landmark]
    return Detection(tuple(points))


def from_array(arr: Any) -> Detection:
    """Adapt an (N, 2) or (N, 3) array of pixel coordinates."""
    pts = np.asarray(arr, dtype=np.float64)
    if pts.size == 0:
        return Detection()
    if pts.ndim != 2 or pts.shape[1] not in (2, 3):
        raise ValueError(f"Expected landmarks of shape (N, 2) or (N, 3), got {pts.shape}")
    if not np.isfinite(pts).all():
        raise ValueError("Landmarks contain non-finite coordinates")
    return Detection(tuple(_point_from_tuple(row.tolist()) for row in pts))


ADAPTERS = {
    "keypoints": from_keypoints,
    "scaled_mesh": from_scaled_mesh,
}


def landmarks_to_numpy(landmarks: Iterable[Sequence[float]]) -> np.ndarray:
    """Convert points or (x, y) pairs to an (N, 2) float64 array."""
    pts = np.asarray([tuple(p)[:2] for p in landmarks], dtype=np.float64)
    return pts.reshape(-1, 2)
