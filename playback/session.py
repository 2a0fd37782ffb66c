from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Tuple

import numpy as np

from camera.controller import (
    CameraMode,
    CameraPreset,
    CameraState,
    CameraUpdate,
    ChasePose,
    chase_pose_for_entity,
    create_initial_camera_state,
    resolve_entity_lock_target,
    update_camera_state,
)
from camera.input import CameraInput
from common.geo import ecef_to_world
from common.logging_setup import get_logger
from common.types import RuntimeFrame
from common.utils import clamp
from timeline.store import TimelineStore


log = get_logger("playback")


@dataclass(slots=True)
class SimulationContext:
    """What the host hands the core on each tick besides dt."""
    camera_mode: CameraMode = CameraMode.STATIC
    camera_target_entity_id: Optional[str] = None
    user_input: CameraInput = field(default_factory=CameraInput.none)
    camera_preset_request: Optional[CameraPreset] = None


@dataclass(slots=True, eq=False)
class TickResult:
    t: float
    frame: RuntimeFrame
    world: Dict[str, np.ndarray]
    camera: CameraState
    lock_entity_id: Optional[str] = None
    chase_pose: Optional[ChasePose] = None


class PlaybackSession:
    """
    Host loop state: playback clock, camera state and per-entity trails.

    Call `tick` once per animation frame. Everything runs synchronously on the
    caller's thread; the store must not be mutated while a tick is running.
    """

    def __init__(
        self,
        store: TimelineStore,
        *,
        time_scale: float = 1.0,
        max_dt_sec: float = 0.05,
        loop: bool = True,
        trail_history: int = 48,
        chase_distance: float = 0.02,
        chase_height: float = 0.004,
    ):
        self.store = store
        self.time_scale = float(time_scale)
        self.max_dt_sec = float(max_dt_sec)
        self.loop = bool(loop)
        self.trail_history = int(trail_history)
        self.chase_distance = float(chase_distance)
        self.chase_height = float(chase_height)
        self.playing = True
        self.camera = create_initial_camera_state()
        self.trails: Dict[str, Deque[np.ndarray]] = {}
        self.current_time = store.get_range().start

    @classmethod
    def from_config(cls, store: TimelineStore, P: Dict[str, Any]) -> "PlaybackSession":
        pb = P.get("playback", {})
        cam = P.get("camera", {})
        return cls(
            store,
            time_scale=pb.get("time_scale", 1.0),
            max_dt_sec=pb.get("max_dt_sec", 0.05),
            loop=pb.get("loop", True),
            trail_history=pb.get("trail_history", 48),
            chase_distance=cam.get("chase_distance", 0.02),
            chase_height=cam.get("chase_height", 0.004),
        )

    # -------------------------
    # Clock controls
    # -------------------------
    def toggle_play(self) -> bool:
        self.playing = not self.playing
        return self.playing

    def set_time_scale(self, scale: float) -> None:
        self.time_scale = float(scale)

    def seek(self, normalized: float) -> None:
        rng = self.store.get_range()
        self.current_time = rng.start + rng.duration * clamp(normalized, 0.0, 1.0)

    def reset(self) -> None:
        self.current_time = self.store.get_range().start
        self.trails.clear()

    @property
    def elapsed(self) -> float:
        return self.current_time - self.store.get_range().start

    @property
    def normalized(self) -> float:
        rng = self.store.get_range()
        return self.elapsed / rng.duration if rng.duration > 0 else 0.0

    def _advance(self, dt: float) -> None:
        rng = self.store.get_range()
        if not self.playing or rng.duration <= 0:
            return
        self.current_time += dt * self.time_scale
        if self.current_time > rng.end:
            if self.loop:
                self.current_time = rng.start
            else:
                self.current_time = rng.end
                self.playing = False

    # -------------------------
    # Tick
    # -------------------------
    def _update_trails(self, world: Dict[str, np.ndarray]) -> None:
        for entity_id, point in world.items():
            history = self.trails.get(entity_id)
            if history is None:
                history = deque(maxlen=self.trail_history)
                self.trails[entity_id] = history
            history.append(point)

    def trail_points(self, entity_id: str) -> List[np.ndarray]:
        return list(self.trails.get(entity_id, ()))

    def tick(self, dt_sec: float, ctx: Optional[SimulationContext] = None) -> TickResult:
        ctx = ctx or SimulationContext()
        dt = clamp(dt_sec, 0.0, self.max_dt_sec)
        self._advance(dt)

        frame = self.store.sample_at_runtime(self.current_time)
        world = {e.id: ecef_to_world(e.position_ecef_m) for e in frame.entities}
        self._update_trails(world)

        mode = CameraMode(ctx.camera_mode)
        lock: Optional[Tuple[str, np.ndarray]] = None
        chase: Optional[ChasePose] = None
        if mode is CameraMode.ENTITY_LOCK:
            lock = resolve_entity_lock_target(list(world.items()), ctx.camera_target_entity_id, self.camera.target)
            if lock is not None:
                entity = next(e for e in frame.entities if e.id == lock[0])
                chase = chase_pose_for_entity(entity, self.chase_distance, self.chase_height)

        self.camera = update_camera_state(
            self.camera,
            CameraUpdate(
                mode=mode,
                dt_sec=dt,
                input=ctx.user_input,
                preset_request=ctx.camera_preset_request,
                entity_lock_target=None if lock is None else lock[1],
                chase_pose=chase,
            ),
        )
        return TickResult(
            t=self.current_time,
            frame=frame,
            world=world,
            camera=self.camera,
            lock_entity_id=None if lock is None else lock[0],
            chase_pose=chase,
        )
