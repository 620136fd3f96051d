"""Text readouts of per-frame geometry, as shown next to the video feed."""

from __future__ import annotations

import dataclasses
import json
from enum import Enum
from typing import Any

READOUT_INTERVAL_FRAMES = 10


def _round_numbers(value: Any, digits: int) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float)):
        return f"{value:.{digits}f}"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    if isinstance(value, dict):
        return {k: _round_numbers(v, digits) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_round_numbers(v, digits) for v in value]
    return value


def to_readout(value: Any, digits: int = 1) -> str:
    """JSON text of `value` with every number as a fixed-point string."""
    return json.dumps(_round_numbers(value, digits))


class ReadoutThrottle:
    """Lets a readout refresh only once every `interval` frames."""

    def __init__(self, interval: int = READOUT_INTERVAL_FRAMES) -> None:
        if interval < 1:
            raise ValueError(f"interval must be at least 1, got {interval}")
        self.interval = interval
        self.count = 0

    def tick(self) -> bool:
        self.count += 1
        if self.count % self.interval == 0:
            self.count = 0
            return True
        return False
