"""
Fixed MediaPipe FaceMesh landmark subsets used by the geometry helpers.

The two nose regions mirror each other around the nose bridge (6, 197, 195,
5, 4, 1) and are compared by area to estimate yaw. The silhouette traces the
outer face contour and bounds the face box.
"""

from __future__ import annotations

from typing import Tuple

# Base mesh size. Refined meshes append 10 iris points (468..477) after it.
MAX_MESH_POINT = 468

RIGHT_NOSE: Tuple[int, ...] = (
    6, 197, 195, 5, 4, 1, 274, 457, 438, 344, 360, 420, 437, 343, 412, 351,
)

LEFT_NOSE: Tuple[int, ...] = (
    6, 197, 195, 5, 4, 1, 44, 237, 218, 115, 131, 198, 217, 114, 188, 122,
)

SILHOUETTE: Tuple[int, ...] = (
    10, 338, 297, 332, 284, 251, 389, 356, 454, 323, 361, 288, 397, 365, 379, 378,
    400, 377, 152, 148, 176, 140, 150, 136, 172, 58, 132, 93, 234, 127, 162, 21,
    54, 103, 67, 109,
)

