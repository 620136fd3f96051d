"""YAML configuration with command-line overrides."""

from __future__ import annotations

import argparse
import os
from typing import Any, Dict

import yaml

from .geometry import DEFAULT_FACTOR
from .landmarks import ADAPTERS, DETECTOR_POLICIES, EmptyDetectionPolicy
from .readout import READOUT_INTERVAL_FRAMES

# Detector shapes the landmark files can hold; `mediapipe` is for library callers only.
DETECTORS = (*ADAPTERS, "array")

DEFAULT_CONFIG: Dict[str, Any] = {
    "factor": DEFAULT_FACTOR,
    # None picks the policy matching the detector
    "policy": None,
    "detector": "array",
    "digits": 1,
    "readout_interval": READOUT_INTERVAL_FRAMES,
    # (height, width); used to scale normalized coordinates, None keeps them as-is
    "image_size": None,
}


def str2bool(v: str) -> bool:
    return v.lower() in ("1", "true", "yes", "y")


def load_config(path: str | None) -> Dict[str, Any]:
    """Read a YAML config on top of the defaults. A missing file keeps the defaults."""
    cfg = dict(DEFAULT_CONFIG)
    if path and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping of config keys")
        cfg.update(data)
    return validate_config(cfg)


def merge_config(cfg: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    cfg = dict(cfg)
    for key in ["factor", "policy", "detector", "digits", "readout_interval"]:
        val = getattr(args, key, None)
        if val is not None:
            cfg[key] = val
    return validate_config(cfg)


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Check values and resolve `empty_detection_policy` from `policy` or the detector."""
    if cfg["detector"] not in DETECTORS:
        raise ValueError(f"Unknown detector '{cfg['detector']}', expected one of {list(DETECTORS)}")
    if cfg["policy"] is None:
        cfg["empty_detection_policy"] = DETECTOR_POLICIES[cfg["detector"]]
    else:
        try:
            cfg["empty_detection_policy"] = EmptyDetectionPolicy(cfg["policy"])
        except ValueError:
            raise ValueError(f"Unknown empty-detection policy '{cfg['policy']}'") from None
    try:
        cfg["factor"] = float(cfg["factor"])
        cfg["digits"] = int(cfg["digits"])
        cfg["readout_interval"] = int(cfg["readout_interval"])
        if cfg["image_size"] is not None:
            cfg["image_size"] = tuple(int(v) for v in cfg["image_size"])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Malformed config value: {exc}") from None
    if not cfg["factor"] > 1:
        raise ValueError(f"factor must be greater than 1, got {cfg['factor']}")
    if cfg["digits"] < 0:
        raise ValueError(f"digits must be non-negative, got {cfg['digits']}")
    if cfg["readout_interval"] < 1:
        raise ValueError(f"readout_interval must be at least 1, got {cfg['readout_interval']}")
    if cfg["image_size"] is not None and len(cfg["image_size"]) != 2:
        raise ValueError(f"image_size must be (height, width), got {cfg['image_size']}")
    return cfg
