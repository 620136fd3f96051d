"""
Geometry helpers for MediaPipe FaceMesh landmarks: subset lookup, face box,
polygon area and a nose-area based face direction heuristic.
"""

__all__ = [
    "analyze",
    "config",
    "geometry",
    "indices_mediapipe",
    "landmarks",
    "readout",
]
