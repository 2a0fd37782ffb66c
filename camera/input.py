from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


# Canvas sizes below this are treated as 1 px (zero-sized viewport guard).
MIN_CANVAS_SIZE_PX = 1.0
WHEEL_UNITS_PER_ZOOM = 600.0
PINCH_PX_PER_ZOOM = 250.0


def normalize_canvas_delta(dx_px: float, dy_px: float, width_px: float, height_px: float) -> Tuple[float, float]:
    """Pointer delta in pixels -> fraction of the canvas size."""
    return (dx_px / max(MIN_CANVAS_SIZE_PX, width_px), dy_px / max(MIN_CANVAS_SIZE_PX, height_px))


@dataclass(frozen=True, slots=True)
class CameraInput:
    """
    Input accumulated over one tick.

    Attributes:
        orbit_delta: (dx, dy) as canvas fractions.
        pan_delta: (dx, dy) as canvas fractions.
        zoom_delta: positive zooms out.
        is_interacting: a drag/touch is currently held.
    """
    orbit_delta: Tuple[float, float] = (0.0, 0.0)
    pan_delta: Tuple[float, float] = (0.0, 0.0)
    zoom_delta: float = 0.0
    is_interacting: bool = False

    @classmethod
    def none(cls) -> "CameraInput":
        return cls()

    @property
    def has_orbit(self) -> bool:
        return self.orbit_delta[0] != 0.0 or self.orbit_delta[1] != 0.0

    @classmethod
    def from_dict(cls, d: dict) -> "CameraInput":
        return cls(
            orbit_delta=tuple(float(v) for v in d.get("orbitDelta", (0.0, 0.0))),  # type: ignore[arg-type]
            pan_delta=tuple(float(v) for v in d.get("panDelta", (0.0, 0.0))),  # type: ignore[arg-type]
            zoom_delta=float(d.get("zoomDelta", 0.0)),
            is_interacting=bool(d.get("isInteracting", False)),
        )


class CameraInputAccumulator:
    """
    Collects device deltas between ticks. `consume_frame_input` hands out the
    sum and resets the buffer, so each gesture unit is applied exactly once no
    matter how many device events produced it. The interaction flag is state,
    not a delta, and survives the drain.
    """

    def __init__(self, width_px: float = 1.0, height_px: float = 1.0):
        self.width_px = width_px
        self.height_px = height_px
        self._orbit = [0.0, 0.0]
        self._pan = [0.0, 0.0]
        self._zoom = 0.0
        self._interacting = False
        self._last_pinch_distance = 0.0

    def resize(self, width_px: float, height_px: float) -> None:
        self.width_px = width_px
        self.height_px = height_px

    def begin_interaction(self) -> None:
        self._interacting = True

    def end_interaction(self) -> None:
        self._interacting = False
        self._last_pinch_distance = 0.0

    def add_orbit_px(self, dx_px: float, dy_px: float) -> None:
        nx, ny = normalize_canvas_delta(dx_px, dy_px, self.width_px, self.height_px)
        self._orbit[0] += nx
        self._orbit[1] += ny

    def add_pan_px(self, dx_px: float, dy_px: float) -> None:
        nx, ny = normalize_canvas_delta(dx_px, dy_px, self.width_px, self.height_px)
        self._pan[0] += nx
        self._pan[1] += ny

    def add_wheel(self, delta_y: float) -> None:
        self._zoom += delta_y / WHEEL_UNITS_PER_ZOOM

    def add_pinch(self, distance_px: float) -> None:
        """Two-finger spread; fingers moving apart zooms in."""
        if self._last_pinch_distance > 0:
            self._zoom += (self._last_pinch_distance - distance_px) / PINCH_PX_PER_ZOOM
        self._last_pinch_distance = distance_px

    def consume_frame_input(self) -> CameraInput:
        snapshot = CameraInput(
            orbit_delta=(self._orbit[0], self._orbit[1]),
            pan_delta=(self._pan[0], self._pan[1]),
            zoom_delta=self._zoom,
            is_interacting=self._interacting,
        )
        self._orbit = [0.0, 0.0]
        self._pan = [0.0, 0.0]
        self._zoom = 0.0
        return snapshot
