from __future__ import annotations

import json
import math
import time
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Deque, Dict


def clamp(v: float, lo: float, hi: float) -> float:
    return float(min(hi, max(lo, v)))


def decay_toward_zero(value: float, dt_sec: float, half_life_sec: float, snap: float = 1e-5) -> float:
    """
    Exponential decay with the given half-life; magnitudes below `snap`
    become exactly 0.
    """
    out = value * math.exp(-math.log(2.0) * max(0.0, dt_sec) / half_life_sec)
    return 0.0 if abs(out) < snap else out


@dataclass(slots=True)
class RateTimer:
    """
    Simple rate tracker for loop diagnostics.

    Usage:
        rt = RateTimer(window=50)
        while True:
            # tick...
            hz = rt.tick()
    """
    window: int = 50
    _times: Deque[float] = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        self._times = deque(maxlen=self.window)

    def tick(self) -> float:
        t = time.perf_counter()
        self._times.append(t)
        if len(self._times) < 2:
            return 0.0
        dt = (self._times[-1] - self._times[0]) / (len(self._times) - 1)
        return 0.0 if dt <= 0 else 1.0 / dt


def write_metrics_row(path: Path, row: Dict[str, Any]) -> None:
    """Append one JSON row to a JSONL metrics file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", buffering=1) as f:
        f.write(json.dumps(row) + "\n")
