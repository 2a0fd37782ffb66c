from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional

from common.quat import yaw_quat
from common.types import (
    CombatEvent,
    CombatEventType,
    Domain,
    EntityKind,
    EntityState,
    FrameMessage,
    Pose,
)


@dataclass(frozen=True)
class TrackDef:
    """
    Periodic synthetic track: lat/lon/alt oscillate around a base point.

    Args:
        base_*: center of the pattern (deg, deg, m)
        d_*: amplitudes (deg, deg, m)
        period_sec: pattern period
        phase: phase offset (rad)
    """
    id: str
    kind: EntityKind
    domain: Domain
    model_id: str
    base_lat: float
    base_lon: float
    base_alt: float
    d_lat: float
    d_lon: float
    d_alt: float
    period_sec: float
    phase: float

    def state_at(self, t: float) -> EntityState:
        omega = 2.0 * math.pi / self.period_sec
        arg = omega * t + self.phase
        lat = self.base_lat + math.sin(arg) * self.d_lat
        lon = self.base_lon + math.cos(arg * 0.7) * self.d_lon
        alt = self.base_alt + math.sin(arg * 1.3) * self.d_alt
        yaw = math.atan2(math.cos(arg * 0.7) * self.d_lon, math.cos(arg) * self.d_lat)
        return EntityState(
            id=self.id,
            kind=self.kind,
            domain=self.domain,
            model_id=self.model_id,
            pose=Pose((lat, lon, max(0.0, alt)), tuple(yaw_quat(yaw))),  # type: ignore[arg-type]
        )


DEMO_TRACKS: List[TrackDef] = [
    TrackDef("air-eagle-01", EntityKind.PLATFORM, Domain.AIR, "f16_faceted",
             34.2, -116.3, 10000.0, 1.6, 2.4, 2200.0, 180.0, 0.2),
    TrackDef("air-tanker-02", EntityKind.PLATFORM, Domain.AIR, "kc135_faceted",
             35.4, -118.0, 11000.0, 1.2, 1.1, 1200.0, 260.0, 1.1),
    TrackDef("sea-frigate-01", EntityKind.PLATFORM, Domain.SEA, "frigate_faceted",
             22.8, -158.5, 0.0, 0.8, 1.8, 0.0, 520.0, 0.4),
    TrackDef("ground-convoy-01", EntityKind.PLATFORM, Domain.GROUND, "convoy_faceted",
             36.1, -115.2, 900.0, 0.4, 0.7, 40.0, 640.0, 0.7),
    TrackDef("space-sat-01", EntityKind.PLATFORM, Domain.SPACE, "satellite_faceted",
             0.0, -30.0, 410000.0, 52.0, 170.0, 5000.0, 560.0, 2.1),
]

MISSILE_ID = "weapon-missile-01"
LAUNCH_T = 40.0
IMPACT_T = 125.0
LAUNCH_LLA = (34.7, -116.2, 10200.0)
IMPACT_LLA = (23.1, -157.6, 100.0)


def missile_state(t: float) -> Optional[EntityState]:
    """Lofted arc from launch to impact; absent outside [LAUNCH_T, IMPACT_T]."""
    if t < LAUNCH_T or t > IMPACT_T:
        return None
    alpha = (t - LAUNCH_T) / (IMPACT_T - LAUNCH_T)
    s, e = LAUNCH_LLA, IMPACT_LLA
    lat = s[0] + (e[0] - s[0]) * alpha + math.sin(alpha * math.pi) * 3.8
    lon = s[1] + (e[1] - s[1]) * alpha
    alt = s[2] + (e[2] - s[2]) * alpha + math.sin(alpha * math.pi) * 18000.0
    yaw = math.atan2(e[1] - s[1], e[0] - s[0])
    return EntityState(
        id=MISSILE_ID,
        kind=EntityKind.WEAPON,
        domain=Domain.AIR,
        model_id="aam_faceted",
        pose=Pose((lat, lon, alt), tuple(yaw_quat(yaw))),  # type: ignore[arg-type]
    )


def generate_demo_scenario(duration_sec: float = 240.0, step_sec: float = 0.2) -> List[FrameMessage]:
    """Deterministic demo: five platforms, one missile, a launch and an impact event."""
    frames: List[FrameMessage] = []
    n = int(math.floor(duration_sec / step_sec + 1e-6))
    for k in range(n + 1):
        t = k * step_sec
        entities = [track.state_at(t) for track in DEMO_TRACKS]
        missile = missile_state(t)
        if missile is not None:
            entities.append(missile)

        events: List[CombatEvent] = []
        if abs(t - LAUNCH_T) < step_sec * 0.5:
            events.append(CombatEvent(
                id=f"launch-{MISSILE_ID}",
                type=CombatEventType.LAUNCH,
                source_id="air-eagle-01",
                position_lla_deg_m=LAUNCH_LLA,
                t=t,
            ))
        if abs(t - IMPACT_T) < step_sec * 0.5:
            events.append(CombatEvent(
                id=f"impact-{MISSILE_ID}",
                type=CombatEventType.IMPACT,
                source_id=MISSILE_ID,
                target_id="sea-frigate-01",
                position_lla_deg_m=(IMPACT_LLA[0], IMPACT_LLA[1], 0.0),
                t=t,
            ))
        frames.append(FrameMessage(t=t, entities=entities, events=events))
    return frames
