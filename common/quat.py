"""
Vector and quaternion primitives.

Quaternions are numpy arrays in (x, y, z, w) order. Every function returns a
fresh array and never raises on degenerate input: zero-length vectors
normalize to zero, zero-norm quaternions normalize to identity.
"""
from __future__ import annotations

from typing import Sequence
import math
import numpy as np


_VEC_EPS = 1e-12
_QUAT_EPS = 1e-12
# cos(half angle) above which slerp falls back to nlerp (~0.057 deg apart)
_SLERP_LINEAR_COS = 0.9995
_SLERP_MIN_SIN = 1e-6


# -------------------------
# 3-vectors
# -------------------------
def vec3(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> np.ndarray:
    return np.array([x, y, z], dtype=float)


def cross3(a: Sequence[float], b: Sequence[float]) -> np.ndarray:
    return np.cross(np.asarray(a, dtype=float), np.asarray(b, dtype=float))


def length3(v: Sequence[float]) -> float:
    return math.sqrt(float(v[0]) ** 2 + float(v[1]) ** 2 + float(v[2]) ** 2)


def normalize3(v: Sequence[float]) -> np.ndarray:
    n = length3(v)
    if n < _VEC_EPS:
        return np.zeros(3, dtype=float)
    return np.asarray(v, dtype=float) / n


def lerp3(a: Sequence[float], b: Sequence[float], t: float) -> np.ndarray:
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    return a + (b - a) * t


# -------------------------
# Quaternions
# -------------------------
def quat_identity() -> np.ndarray:
    return np.array([0.0, 0.0, 0.0, 1.0], dtype=float)


def quat_normalize(q: Sequence[float]) -> np.ndarray:
    q = np.asarray(q, dtype=float)
    n = math.sqrt(float(q @ q))
    if n < _QUAT_EPS:
        return quat_identity()
    return q / n


def quat_conjugate(q: Sequence[float]) -> np.ndarray:
    return np.array([-q[0], -q[1], -q[2], q[3]], dtype=float)


def quat_multiply(a: Sequence[float], b: Sequence[float]) -> np.ndarray:
    """Hamilton product a*b: applies b first, then a."""
    ax, ay, az, aw = (float(c) for c in a)
    bx, by, bz, bw = (float(c) for c in b)
    return np.array(
        [
            aw * bx + ax * bw + ay * bz - az * by,
            aw * by - ax * bz + ay * bw + az * bx,
            aw * bz + ax * by - ay * bx + az * bw,
            aw * bw - ax * bx - ay * by - az * bz,
        ],
        dtype=float,
    )


def quat_rotate(q: Sequence[float], v: Sequence[float]) -> np.ndarray:
    """Rotate vector v by unit quaternion q (q * v * q^-1)."""
    p = np.array([v[0], v[1], v[2], 0.0], dtype=float)
    r = quat_multiply(quat_multiply(q, p), quat_conjugate(q))
    return r[:3].copy()


def quat_slerp(a: Sequence[float], b: Sequence[float], t: float) -> np.ndarray:
    """
    Shortest-path spherical interpolation between two orientations.
    Nearly identical inputs use normalized linear interpolation instead.
    """
    q1 = quat_normalize(a)
    q2 = quat_normalize(b)
    cos_half = float(q1 @ q2)
    if cos_half < 0.0:
        q2 = -q2
        cos_half = -cos_half

    if cos_half > _SLERP_LINEAR_COS:
        return quat_normalize(q1 + (q2 - q1) * t)

    half = math.acos(cos_half)
    sin_half = math.sqrt(1.0 - cos_half * cos_half)
    if abs(sin_half) < _SLERP_MIN_SIN:
        return q1
    ra = math.sin((1.0 - t) * half) / sin_half
    rb = math.sin(t * half) / sin_half
    return q1 * ra + q2 * rb


def quat_from_basis(x_axis: Sequence[float], y_axis: Sequence[float], z_axis: Sequence[float]) -> np.ndarray:
    """
    Quaternion of the rotation whose matrix columns are the given axes
    (each normalized first). Standard four-branch trace method.
    """
    x = normalize3(x_axis)
    y = normalize3(y_axis)
    z = normalize3(z_axis)
    m00, m01, m02 = x[0], y[0], z[0]
    m10, m11, m12 = x[1], y[1], z[1]
    m20, m21, m22 = x[2], y[2], z[2]
    trace = m00 + m11 + m22

    if trace > 0.0:
        s = math.sqrt(trace + 1.0) * 2.0
        q = [(m21 - m12) / s, (m02 - m20) / s, (m10 - m01) / s, 0.25 * s]
    elif m00 > m11 and m00 > m22:
        s = math.sqrt(1.0 + m00 - m11 - m22) * 2.0
        q = [0.25 * s, (m01 + m10) / s, (m02 + m20) / s, (m21 - m12) / s]
    elif m11 > m22:
        s = math.sqrt(1.0 + m11 - m00 - m22) * 2.0
        q = [(m01 + m10) / s, 0.25 * s, (m12 + m21) / s, (m02 - m20) / s]
    else:
        s = math.sqrt(1.0 + m22 - m00 - m11) * 2.0
        q = [(m02 + m20) / s, (m12 + m21) / s, 0.25 * s, (m10 - m01) / s]
    return quat_normalize(q)


def yaw_quat(yaw_rad: float) -> np.ndarray:
    """Body->NED rotation for a level heading (rotation about the down axis)."""
    h = yaw_rad / 2.0
    return np.array([0.0, 0.0, math.sin(h), math.cos(h)], dtype=float)
