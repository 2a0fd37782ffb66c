"""
Camera controller.

`update_camera_state` is a pure transition: (previous state, mode, input, dt)
-> next state. Two transitions exist:

  * chase: entityLock mode, chase flag set and an anchor pose supplied.
    The camera rides a bounded yaw/pitch/zoom offset around the
    anchor; offsets relax back to zero once the user lets go.
  * orbit: everything else. Orbit-sphere parameters (yaw, pitch, distance)
    around a target that can be panned or snapped to an entity.

All positions are in the render ("world") frame: ECEF scaled so the
ellipsoid is the unit sphere (see common.geo.ecef_to_world).
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from camera.input import CameraInput
from common.geo import body_frd_to_ecef_quat, ecef_to_lla, ecef_to_world
from common.quat import cross3, length3, quat_rotate
from common.types import RuntimeEntityState
from common.utils import clamp, decay_toward_zero


class CameraMode(str, Enum):
    STATIC = "static"
    ORBIT = "orbit"
    ENTITY_LOCK = "entityLock"


class CameraPreset(str, Enum):
    TACTICAL = "tactical"
    CHASE = "chase"
    CLOSE = "close"
    WIDE = "wide"


# --- tunables (empirical, no derivation) ---
ORBIT_AUTO_RATE_RAD_PER_SEC = 2.0 * math.pi / 86400.0  # one revolution per 24 h
YAW_SENSITIVITY = 1.5 * math.pi
PITCH_SENSITIVITY = math.pi
ZOOM_SENSITIVITY = 0.85
PAN_SENSITIVITY = 1.6
PITCH_LIMIT_RAD = 1.25
MIN_DISTANCE = 1.15
MAX_DISTANCE = 6.0

CHASE_YAW_SENSITIVITY = YAW_SENSITIVITY
CHASE_PITCH_SENSITIVITY = PITCH_SENSITIVITY
CHASE_PITCH_LIMIT_RAD = 0.95
CHASE_MIN_ZOOM = 0.45
CHASE_MAX_ZOOM = 2.5
CHASE_RECENTER_HALF_LIFE_SEC = 0.35
CHASE_OFFSET_SNAP = 1e-5

# preset -> (distance, pitch)
PRESETS = {
    CameraPreset.TACTICAL: (2.4, 0.45),
    CameraPreset.CLOSE: (1.6, 0.3),
    CameraPreset.WIDE: (4.2, 0.7),
}

_NORMALIZE_EPS = 1e-12
_WORLD_UP = np.array([0.0, 0.0, 1.0])
_FALLBACK_RIGHT = np.array([0.0, 1.0, 0.0])
_FALLBACK_BACK = np.array([1.0, 0.0, 0.0])


def _vec(v: Sequence[float]) -> np.ndarray:
    return np.array([float(v[0]), float(v[1]), float(v[2])], dtype=float)


def _normalize_or(v: np.ndarray, fallback: np.ndarray) -> np.ndarray:
    n = length3(v)
    if n < _NORMALIZE_EPS:
        return fallback.copy()
    return v / n


@dataclass(frozen=True, eq=False)
class ChasePose:
    """Anchor for the chase camera, in the world frame."""
    eye: np.ndarray
    target: np.ndarray
    up: np.ndarray


@dataclass(frozen=True, eq=False)
class CameraState:
    """
    Orbit-sphere parameters around `target` plus the derived eye/up. The chase
    offsets are only meaningful while `chase_enabled` is set.
    """
    yaw_rad: float = 0.0
    pitch_rad: float = PRESETS[CameraPreset.TACTICAL][1]
    distance: float = PRESETS[CameraPreset.TACTICAL][0]
    target: np.ndarray = field(default_factory=lambda: np.zeros(3))
    eye: np.ndarray = field(default_factory=lambda: np.zeros(3))
    up: np.ndarray = field(default_factory=lambda: _WORLD_UP.copy())
    chase_enabled: bool = False
    chase_yaw_offset_rad: float = 0.0
    chase_pitch_offset_rad: float = 0.0
    chase_zoom_scale: float = 1.0

    def to_dict(self) -> dict:
        return {
            "yawRad": self.yaw_rad,
            "pitchRad": self.pitch_rad,
            "distance": self.distance,
            "target": self.target.tolist(),
            "eye": self.eye.tolist(),
            "up": self.up.tolist(),
            "chaseEnabled": self.chase_enabled,
            "chaseYawOffsetRad": self.chase_yaw_offset_rad,
            "chasePitchOffsetRad": self.chase_pitch_offset_rad,
            "chaseZoomScale": self.chase_zoom_scale,
        }


@dataclass(frozen=True, eq=False)
class CameraUpdate:
    mode: CameraMode
    dt_sec: float
    input: CameraInput = field(default_factory=CameraInput.none)
    preset_request: Optional[CameraPreset] = None
    entity_lock_target: Optional[Sequence[float]] = None
    chase_pose: Optional[ChasePose] = None


# -------------------------
# Orbit-sphere geometry
# -------------------------
def _eye_and_up(target: np.ndarray, yaw: float, pitch: float, distance: float) -> Tuple[np.ndarray, np.ndarray]:
    cp = math.cos(pitch)
    offset = np.array([cp * math.cos(yaw), cp * math.sin(yaw), math.sin(pitch)]) * distance
    eye = target + offset
    _, up = _view_basis(eye, target)
    return eye, up


def _view_basis(eye: np.ndarray, target: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """(right, up) of a camera at `eye` looking at `target`."""
    forward = _normalize_or(target - eye, -_FALLBACK_BACK)
    right = _normalize_or(cross3(forward, _WORLD_UP), _FALLBACK_RIGHT)
    up = _normalize_or(cross3(right, forward), _WORLD_UP)
    return right, up


def _with_pose(state: CameraState, target: np.ndarray) -> CameraState:
    eye, up = _eye_and_up(target, state.yaw_rad, state.pitch_rad, state.distance)
    return replace(state, target=target, eye=eye, up=up)


def create_initial_camera_state() -> CameraState:
    return _with_pose(CameraState(), np.zeros(3))


def apply_camera_preset(state: CameraState, preset: Union[CameraPreset, str]) -> CameraState:
    """
    `chase` only arms the chase flag (offsets reset); the camera does not move.
    Any other preset sets distance/pitch and disarms chase.
    """
    preset = CameraPreset(preset)
    if preset is CameraPreset.CHASE:
        return replace(
            state,
            chase_enabled=True,
            chase_yaw_offset_rad=0.0,
            chase_pitch_offset_rad=0.0,
            chase_zoom_scale=1.0,
        )
    distance, pitch = PRESETS[preset]
    out = replace(
        state,
        distance=distance,
        pitch_rad=pitch,
        chase_enabled=False,
        chase_yaw_offset_rad=0.0,
        chase_pitch_offset_rad=0.0,
        chase_zoom_scale=1.0,
    )
    return _with_pose(out, out.target)


# -------------------------
# Transitions
# -------------------------
def _chase_transition(prev: CameraState, upd: CameraUpdate, anchor: ChasePose) -> CameraState:
    target = _vec(anchor.target)
    offset = _vec(anchor.eye) - target
    anchor_distance = length3(offset)
    back = _normalize_or(offset, _FALLBACK_BACK)
    right = _normalize_or(cross3(_vec(anchor.up), back), _normalize_or(cross3(_WORLD_UP, back), _FALLBACK_RIGHT))
    up = _normalize_or(cross3(back, right), _WORLD_UP)

    inp = upd.input
    odx, ody = inp.orbit_delta
    yaw_off = prev.chase_yaw_offset_rad + odx * CHASE_YAW_SENSITIVITY
    pitch_off = clamp(
        prev.chase_pitch_offset_rad + ody * CHASE_PITCH_SENSITIVITY,
        -CHASE_PITCH_LIMIT_RAD,
        CHASE_PITCH_LIMIT_RAD,
    )
    zoom = clamp(
        prev.chase_zoom_scale * math.exp(inp.zoom_delta * ZOOM_SENSITIVITY),
        CHASE_MIN_ZOOM,
        CHASE_MAX_ZOOM,
    )
    if not inp.has_orbit and not inp.is_interacting:
        yaw_off = decay_toward_zero(yaw_off, upd.dt_sec, CHASE_RECENTER_HALF_LIFE_SEC, CHASE_OFFSET_SNAP)
        pitch_off = decay_toward_zero(pitch_off, upd.dt_sec, CHASE_RECENTER_HALF_LIFE_SEC, CHASE_OFFSET_SNAP)

    # pan is ignored while chasing
    cy, sy = math.cos(yaw_off), math.sin(yaw_off)
    cp, sp = math.cos(pitch_off), math.sin(pitch_off)
    direction = back * (cp * cy) + right * (cp * sy) + up * sp
    rotated_right = right * cy - back * sy
    eye = target + direction * (anchor_distance * zoom)
    eye_up = _normalize_or(cross3(direction, rotated_right), up)

    return replace(
        prev,
        target=target,
        eye=eye,
        up=eye_up,
        chase_yaw_offset_rad=yaw_off,
        chase_pitch_offset_rad=pitch_off,
        chase_zoom_scale=zoom,
    )


def _orbit_transition(prev: CameraState, upd: CameraUpdate) -> CameraState:
    inp = upd.input
    yaw = prev.yaw_rad
    if upd.mode is CameraMode.ORBIT and not inp.is_interacting:
        yaw += upd.dt_sec * ORBIT_AUTO_RATE_RAD_PER_SEC

    odx, ody = inp.orbit_delta
    yaw += odx * YAW_SENSITIVITY
    pitch = clamp(prev.pitch_rad + ody * PITCH_SENSITIVITY, -PITCH_LIMIT_RAD, PITCH_LIMIT_RAD)
    distance = clamp(prev.distance * math.exp(inp.zoom_delta * ZOOM_SENSITIVITY), MIN_DISTANCE, MAX_DISTANCE)

    target = prev.target.copy()
    eye, _ = _eye_and_up(target, yaw, pitch, distance)
    right, up = _view_basis(eye, target)
    if upd.mode is not CameraMode.ENTITY_LOCK:
        pdx, pdy = inp.pan_delta
        target = target + (-right * pdx + up * pdy) * (distance * PAN_SENSITIVITY)

    if upd.mode is CameraMode.ENTITY_LOCK and upd.entity_lock_target is not None:
        target = _vec(upd.entity_lock_target)

    eye, up = _eye_and_up(target, yaw, pitch, distance)
    return replace(prev, yaw_rad=yaw, pitch_rad=pitch, distance=distance, target=target, eye=eye, up=up)


def update_camera_state(prev: CameraState, upd: CameraUpdate) -> CameraState:
    mode = CameraMode(upd.mode)
    if mode is not upd.mode:
        upd = replace(upd, mode=mode)

    state = prev
    if upd.preset_request is not None:
        state = apply_camera_preset(state, upd.preset_request)

    if mode is CameraMode.ENTITY_LOCK and state.chase_enabled and upd.chase_pose is not None:
        return _chase_transition(state, upd, upd.chase_pose)
    return _orbit_transition(state, upd)


# -------------------------
# Anchor / lock helpers
# -------------------------
def chase_pose_for_entity(entity: RuntimeEntityState, distance: float, height: float) -> ChasePose:
    """
    Anchor behind and above an entity, following its body axes: the eye sits
    `distance` back along body-forward and `height` up along body-up (-down).
    """
    lla = ecef_to_lla(entity.position_ecef_m)
    q = body_frd_to_ecef_quat(entity.state.pose.orientation_body_to_ned_quat, lla)
    forward = _normalize_or(ecef_to_world(quat_rotate(q, (1.0, 0.0, 0.0))), _FALLBACK_BACK)
    down = _normalize_or(ecef_to_world(quat_rotate(q, (0.0, 0.0, 1.0))), -_WORLD_UP)
    target = ecef_to_world(entity.position_ecef_m)
    eye = target - forward * distance - down * height
    return ChasePose(eye=eye, target=target, up=-down)


def resolve_entity_lock_target(
    world_points: Sequence[Tuple[str, np.ndarray]],
    target_entity_id: Optional[str],
    camera_target: Sequence[float],
) -> Optional[Tuple[str, np.ndarray]]:
    """
    The requested entity when present, else the entity closest to the
    current camera target. None when there is nothing to lock onto.
    """
    if not world_points:
        return None
    if target_entity_id:
        for entity_id, world in world_points:
            if entity_id == target_entity_id:
                return entity_id, world
    ref = _vec(camera_target)
    return min(world_points, key=lambda item: float(np.sum((item[1] - ref) ** 2)))
