from __future__ import annotations

from typing import Dict, Sequence, Tuple
import math
import numpy as np

from common.quat import quat_from_basis, quat_multiply, quat_normalize


# --- WGS84 constants ---
WGS84_A = 6378137.0               # semi-major axis (m)
WGS84_B = 6356752.314245          # semi-minor axis (m)
WGS84_E2 = 1.0 - (WGS84_B * WGS84_B) / (WGS84_A * WGS84_A)            # first eccentricity squared
WGS84_EP2 = (WGS84_A * WGS84_A - WGS84_B * WGS84_B) / (WGS84_B * WGS84_B)  # second eccentricity squared

DEG2RAD = math.pi / 180.0
RAD2DEG = 180.0 / math.pi

# Horizontal radius below which a point is treated as lying on the polar axis.
_POLAR_AXIS_EPS_M = 1e-6

LlaDegM = Tuple[float, float, float]


def lla_deg_to_rad(lla: Sequence[float]) -> Tuple[float, float, float]:
    return (float(lla[0]) * DEG2RAD, float(lla[1]) * DEG2RAD, float(lla[2]))


def lla_rad_to_deg(lla: Sequence[float]) -> LlaDegM:
    return (float(lla[0]) * RAD2DEG, float(lla[1]) * RAD2DEG, float(lla[2]))


# -------------------------
# LLA <-> ECEF <-> NED
# -------------------------
def lla_to_ecef(lla: Sequence[float]) -> np.ndarray:
    """WGS84 geodetic (lat deg, lon deg, alt m) to ECEF (x,y,z) meters."""
    lat, lon, alt = lla_deg_to_rad(lla)
    sinp = math.sin(lat)
    cosp = math.cos(lat)
    N = WGS84_A / math.sqrt(1.0 - WGS84_E2 * sinp * sinp)
    x = (N + alt) * cosp * math.cos(lon)
    y = (N + alt) * cosp * math.sin(lon)
    z = (N * (1.0 - WGS84_E2) + alt) * sinp
    return np.array([x, y, z], dtype=float)


def ecef_to_lla(ecef: Sequence[float]) -> LlaDegM:
    """
    ECEF (x,y,z) to WGS84 geodetic (lat deg, lon deg, alt m). Bowring's method,
    closed form (no iteration).

    Points on the polar axis have no defined longitude; they come back as
    lat=±90, lon=0, alt=|z|-b.
    """
    x, y, z = float(ecef[0]), float(ecef[1]), float(ecef[2])
    p = math.hypot(x, y)
    if p < _POLAR_AXIS_EPS_M:
        lat = math.pi / 2.0 if z >= 0 else -math.pi / 2.0
        return lla_rad_to_deg((lat, 0.0, abs(z) - WGS84_B))

    th = math.atan2(z * WGS84_A, p * WGS84_B)
    cth, sth = math.cos(th), math.sin(th)
    lat = math.atan2(
        z + WGS84_EP2 * WGS84_B * sth ** 3,
        p - WGS84_E2 * WGS84_A * cth ** 3,
    )
    lon = math.atan2(y, x)
    sinp = math.sin(lat)
    N = WGS84_A / math.sqrt(1.0 - WGS84_E2 * sinp * sinp)
    alt = p / math.cos(lat) - N
    return lla_rad_to_deg((lat, lon, alt))


def ned_basis_at_lla(lla: Sequence[float]) -> Dict[str, np.ndarray]:
    """
    Local North/East/Down unit vectors (expressed in ECEF) at a geographic point.
    Altitude does not affect the orientation of the tangent plane.
    """
    lat, lon, _ = lla_deg_to_rad(lla)
    sL, cL = math.sin(lat), math.cos(lat)
    sO, cO = math.sin(lon), math.cos(lon)
    north = np.array([-sL * cO, -sL * sO, cL], dtype=float)
    east = np.array([-sO, cO, 0.0], dtype=float)
    down = np.array([-cL * cO, -cL * sO, -sL], dtype=float)
    return {"north": north, "east": east, "down": down}


def body_frd_to_ecef_quat(body_to_ned_quat: Sequence[float], lla: Sequence[float]) -> np.ndarray:
    """
    Express a body Forward-Right-Down orientation in ECEF.

    The NED->ECEF rotation has the local north/east/down vectors as its columns;
    it is applied after the body->NED rotation.
    """
    basis = ned_basis_at_lla(lla)
    ned_to_ecef = quat_from_basis(basis["north"], basis["east"], basis["down"])
    return quat_normalize(quat_multiply(ned_to_ecef, body_to_ned_quat))


# -------------------------
# Render frame scaling
# -------------------------
def ecef_to_world(ecef: Sequence[float]) -> np.ndarray:
    """Scale ECEF so the ellipsoid maps onto the unit sphere (x,y by a; z by b)."""
    return np.array([ecef[0] / WGS84_A, ecef[1] / WGS84_A, ecef[2] / WGS84_B], dtype=float)
