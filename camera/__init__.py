"""
Camera — view state machine

Provides:
- update_camera_state: pure (state, mode, input, dt) -> state transition for
  static / orbit / entityLock modes, with the chase camera as a distinct case
- Presets (tactical, close, wide, chase) applied as one-shot adjustments
- CameraInputAccumulator: per-tick drain of pointer/wheel/pinch deltas

Usage:
    from camera import CameraMode, CameraUpdate, create_initial_camera_state, update_camera_state
    state = create_initial_camera_state()
    state = update_camera_state(state, CameraUpdate(mode=CameraMode.ORBIT, dt_sec=0.016))
"""
from .input import CameraInput, CameraInputAccumulator, normalize_canvas_delta
from .controller import (
    CameraMode,
    CameraPreset,
    CameraState,
    CameraUpdate,
    ChasePose,
    apply_camera_preset,
    chase_pose_for_entity,
    create_initial_camera_state,
    resolve_entity_lock_target,
    update_camera_state,
)

__all__ = [
    "CameraInput",
    "CameraInputAccumulator",
    "CameraMode",
    "CameraPreset",
    "CameraState",
    "CameraUpdate",
    "ChasePose",
    "apply_camera_preset",
    "chase_pose_for_entity",
    "create_initial_camera_state",
    "normalize_canvas_delta",
    "resolve_entity_lock_target",
    "update_camera_state",
]
