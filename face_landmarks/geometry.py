"""Per-frame geometry over a FaceMesh detection: subsets, face box, direction."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from .indices_mediapipe import LEFT_NOSE, MAX_MESH_POINT, RIGHT_NOSE, SILHOUETTE
from .landmarks import Detection, EmptyDetectionPolicy, Point, landmarks_to_numpy

DEFAULT_FACTOR = 3.0


class EmptyDetectionError(ValueError):
    """Raised when an empty-detection selection is unwrapped."""


class SelectionStatus(str, Enum):
    OK = "ok"
    EMPTY_DETECTION = "empty_detection"


class Direction(str, Enum):
    CENTER = "center"
    LEFT = "left"
    RIGHT = "right"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class Selection:
    """Result of a subset lookup: the selected points or an empty-detection failure."""

    status: SelectionStatus
    points: Tuple[Point, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status is SelectionStatus.OK

    def unwrap(self) -> Tuple[Point, ...]:
        if not self.ok:
            raise EmptyDetectionError("Detection result carries no mesh points")
        return self.points


@dataclass(frozen=True)
class FaceBox:
    left: float
    top: float
    right: float
    bottom: float
    width: float
    height: float


@dataclass(frozen=True)
class FaceDirection:
    left_nose_area: float
    right_nose_area: float
    left_to_right_ratio: Optional[float]
    direction: Direction


def select_mesh_points(
    detection: Optional[Detection],
    indices: Iterable[int],
    policy: EmptyDetectionPolicy = EmptyDetectionPolicy.LENIENT,
) -> Selection:
    """
    Pick the points at `indices`, keeping the requested order.

    Indices past the base mesh (iris points) are dropped. A missing detection
    selects nothing under the lenient policy and fails under the strict one;
    a detection without points always fails.
    """
    policy = EmptyDetectionPolicy(policy)
    if detection is None:
        if policy is EmptyDetectionPolicy.LENIENT:
            return Selection(SelectionStatus.OK)
        return Selection(SelectionStatus.EMPTY_DETECTION)
    if len(detection) == 0:
        return Selection(SelectionStatus.EMPTY_DETECTION)
    valid = [i for i in indices if i < MAX_MESH_POINT]
    missing = [i for i in valid if i < 0 or i >= len(detection)]
    if missing:
        raise ValueError(f"Detection has {len(detection)} points, cannot select {missing}")
    return Selection(SelectionStatus.OK, tuple(detection[i] for i in valid))


def face_box(
    detection: Optional[Detection],
    policy: EmptyDetectionPolicy = EmptyDetectionPolicy.LENIENT,
) -> Optional[FaceBox]:
    """Bounding box of the silhouette points, or None when there is no face."""
    selection = select_mesh_points(detection, SILHOUETTE, policy)
    if not selection.ok or not selection.points:
        return None
    pts = landmarks_to_numpy(selection.points)
    left, top = pts.min(axis=0)
    right, bottom = pts.max(axis=0)
    return FaceBox(
        left=float(left),
        top=float(top),
        right=float(right),
        bottom=float(bottom),
        width=float(right - left),
        height=float(bottom - top),
    )


def polygon_area(polygon: Sequence[Sequence[float]]) -> float:
    """Shoelace area of a closed polygon; the last point joins back to the first."""
    pts = landmarks_to_numpy(polygon)
    if len(pts) == 0:
        return 0.0
    xs, ys = pts[:, 0], pts[:, 1]
    next_xs, next_ys = np.roll(xs, -1), np.roll(ys, -1)
    area = float(abs(np.sum(xs * next_ys - ys * next_xs)) / 2.0)
    if not math.isfinite(area):
        raise ValueError("Polygon area is not finite")
    return area


def classify_ratio(ratio: float, factor: float = DEFAULT_FACTOR) -> Direction:
    """Map a left/right nose area ratio to a direction."""
    if not factor > 1:
        raise ValueError(f"factor must be greater than 1, got {factor}")
    if ratio < factor:
        if ratio > 1.0 / factor:
            return Direction.CENTER
        return Direction.RIGHT
    return Direction.LEFT


def face_direction(
    detection: Optional[Detection],
    factor: float = DEFAULT_FACTOR,
    policy: EmptyDetectionPolicy = EmptyDetectionPolicy.LENIENT,
) -> Optional[FaceDirection]:
    """
    Estimate yaw from the asymmetry of the two nose-region polygons.

    Turning the head shrinks the projected area of the nose side facing away
    from the camera. Returns None when the detection is an empty-detection
    failure. A zero right area, or one small enough to overflow the ratio,
    gives `left` without a ratio; two zero areas give `indeterminate`.
    """
    if not factor > 1:
        raise ValueError(f"factor must be greater than 1, got {factor}")
    left_sel = select_mesh_points(detection, LEFT_NOSE, policy)
    right_sel = select_mesh_points(detection, RIGHT_NOSE, policy)
    if not left_sel.ok or not right_sel.ok:
        return None

    left_area = polygon_area(left_sel.points)
    right_area = polygon_area(right_sel.points)
    if right_area == 0:
        direction = Direction.LEFT if left_area > 0 else Direction.INDETERMINATE
        return FaceDirection(left_area, right_area, None, direction)

    ratio = left_area / right_area
    if not math.isfinite(ratio):
        return FaceDirection(left_area, right_area, None, Direction.LEFT)
    return FaceDirection(left_area, right_area, ratio, classify_ratio(ratio, factor))
