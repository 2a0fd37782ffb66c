from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np


TimeSeconds = float
Vec3Tuple = Tuple[float, float, float]
QuatTuple = Tuple[float, float, float, float]
MetadataValue = Union[str, float, int, bool]

PROTOCOL_VERSION = "1.0"


class EntityKind(str, Enum):
    PLATFORM = "platform"
    WEAPON = "weapon"


class Domain(str, Enum):
    AIR = "air"
    GROUND = "ground"
    SEA = "sea"
    SPACE = "space"


class CombatEventType(str, Enum):
    LAUNCH = "launch"
    IMPACT = "impact"
    INTERCEPT = "intercept"


def _as_float_tuple(x) -> Tuple[float, ...]:
    return tuple(float(v) for v in x)


@dataclass(slots=True)
class SessionHeader:
    protocol_version: str = PROTOCOL_VERSION
    scenario_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"protocolVersion": self.protocol_version}
        if self.scenario_id is not None:
            d["scenarioId"] = self.scenario_id
        return d


@dataclass(slots=True)
class Pose:
    """
    Attributes:
        position_lla_deg_m: (lat deg, lon deg, alt m) on WGS84.
        orientation_body_to_ned_quat: (x, y, z, w) body FRD -> local NED.
    """
    position_lla_deg_m: Vec3Tuple
    orientation_body_to_ned_quat: QuatTuple

    def __post_init__(self) -> None:
        self.position_lla_deg_m = _as_float_tuple(self.position_lla_deg_m)  # type: ignore[assignment]
        self.orientation_body_to_ned_quat = _as_float_tuple(self.orientation_body_to_ned_quat)  # type: ignore[assignment]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "positionLlaDegM": list(self.position_lla_deg_m),
            "orientationBodyToNedQuat": list(self.orientation_body_to_ned_quat),
        }


@dataclass(slots=True)
class EntityState:
    """
    One entity snapshot inside a frame. Identity persists across frames via `id`.
    """
    id: str
    kind: EntityKind
    domain: Domain
    model_id: str
    pose: Pose
    velocity_ecef: Optional[Vec3Tuple] = None
    metadata: Optional[Dict[str, MetadataValue]] = None

    def copy(self) -> "EntityState":
        return EntityState(
            id=self.id,
            kind=self.kind,
            domain=self.domain,
            model_id=self.model_id,
            pose=Pose(self.pose.position_lla_deg_m, self.pose.orientation_body_to_ned_quat),
            velocity_ecef=self.velocity_ecef,
            metadata=dict(self.metadata) if self.metadata is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "domain": self.domain.value,
            "modelId": self.model_id,
            "pose": self.pose.to_dict(),
        }
        if self.velocity_ecef is not None:
            d["velocityEcef"] = list(self.velocity_ecef)
        if self.metadata is not None:
            d["metadata"] = dict(self.metadata)
        return d


@dataclass(slots=True)
class CombatEvent:
    """Point-in-time event; never interpolated."""
    id: str
    type: CombatEventType
    position_lla_deg_m: Vec3Tuple
    t: TimeSeconds
    source_id: Optional[str] = None
    target_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"id": self.id, "type": self.type.value}
        if self.source_id is not None:
            d["sourceId"] = self.source_id
        if self.target_id is not None:
            d["targetId"] = self.target_id
        d["positionLlaDegM"] = list(self.position_lla_deg_m)
        d["t"] = self.t
        return d


@dataclass(slots=True)
class FrameMessage:
    """Unit of ingestion: every entity and event shares timestamp `t`."""
    t: TimeSeconds
    entities: List[EntityState] = field(default_factory=list)
    events: Optional[List[CombatEvent]] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"t": self.t, "entities": [e.to_dict() for e in self.entities]}
        if self.events is not None:
            d["events"] = [ev.to_dict() for ev in self.events]
        return d


@dataclass(slots=True, eq=False)
class RuntimeEntityState:
    """
    Sampled entity with its ECEF position already computed, so the render path
    does not convert LLA again.
    """
    state: EntityState
    position_ecef_m: np.ndarray = field(repr=False)

    @property
    def id(self) -> str:
        return self.state.id

    def to_dict(self) -> Dict[str, Any]:
        d = self.state.to_dict()
        d["positionEcefM"] = [float(v) for v in self.position_ecef_m]
        return d


@dataclass(slots=True, eq=False)
class RuntimeFrame:
    t: TimeSeconds
    entities: List[RuntimeEntityState] = field(default_factory=list)
    events: List[CombatEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "t": self.t,
            "entities": [e.to_dict() for e in self.entities],
            "events": [ev.to_dict() for ev in self.events],
        }
