"""
Wire format v1.0 validation.

The camelCase wire shapes are pydantic models. Every failure raises
SchemaValidationError whose message starts with the field path that failed,
built from the first pydantic error location, e.g.
`frame.entities[2].pose.positionLlaDegM[1]`. Parsing builds fresh objects and
has no side effects, so a rejected message never reaches the timeline.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Annotated, Any, Dict, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import (
    AfterValidator,
    AllowInfNan,
    BaseModel,
    ConfigDict,
    Field,
    Strict,
    StrictStr,
    StringConstraints,
    ValidationError,
    field_validator,
)

from common.types import (
    PROTOCOL_VERSION,
    CombatEvent,
    CombatEventType,
    Domain,
    EntityKind,
    EntityState,
    FrameMessage,
    MetadataValue,
    Pose,
    SessionHeader,
)


class SchemaValidationError(ValueError):
    def __init__(self, path: str, message: str, context: Optional[str] = None):
        text = f"{path} {message}"
        super().__init__(f"{context}: {text}" if context else text)
        self.path = path
        self.message = message

    def in_context(self, context: str) -> "SchemaValidationError":
        """Same failure, prefixed with where in a batch it happened."""
        return SchemaValidationError(self.path, self.message, context)

    @classmethod
    def from_validation_error(cls, root: str, exc: ValidationError) -> "SchemaValidationError":
        """Report the first pydantic error, with its `loc` rendered as a field path."""
        err = exc.errors()[0]
        return cls(format_loc(root, err["loc"]), _describe(err))


@dataclass(slots=True)
class ParseResult:
    """Outcome of validating one message; exactly one of value/error is set."""
    ok: bool
    value: Optional[FrameMessage] = None
    error: Optional[SchemaValidationError] = None


def format_loc(root: str, loc: Sequence[Union[str, int]]) -> str:
    """("entities", 2, "pose") under "frame" -> "frame.entities[2].pose"."""
    return root + "".join(f"[{p}]" if isinstance(p, int) else f".{p}" for p in loc)


_MESSAGES = {
    "missing": "is required",
    "float_type": "must be numeric",
    "finite_number": "must be numeric",
    "string_type": "must be a string",
    "string_too_short": "must be a non-empty string",
    "model_type": "must be an object",
    "model_attributes_type": "must be an object",
    "dict_type": "must be an object",
    "list_type": "must be an array",
}


def _describe(err: Dict[str, Any]) -> str:
    kind = err["type"]
    ctx = err.get("ctx") or {}
    if kind in _MESSAGES:
        return _MESSAGES[kind]
    if kind in ("enum", "literal_error"):
        # ctx["expected"] reads "'platform' or 'weapon'"
        allowed = re.findall(r"'([^']*)'", str(ctx.get("expected", "")))
        return f"must be {'|'.join(allowed)}"
    if kind == "value_error" and "error" in ctx:
        return str(ctx["error"])
    return err["msg"]


# -------------------------
# Field types
# -------------------------
# bool is an int subclass; strict mode keeps JSON true/false out of numbers
Number = Annotated[float, Strict(), AllowInfNan(False)]
NonEmptyStr = Annotated[str, StringConstraints(strict=True, min_length=1)]
Vec3 = Tuple[Number, Number, Number]
Quat4 = Tuple[Number, Number, Number, Number]


def _metadata_value(v: Any) -> MetadataValue:
    if isinstance(v, (str, bool)):
        return v
    if isinstance(v, (int, float)) and math.isfinite(v):
        return v
    raise ValueError("must be string|number|boolean")


MetadataScalar = Annotated[Any, AfterValidator(_metadata_value)]


def _check_length(v: Any, n: int) -> Any:
    if not isinstance(v, (list, tuple)) or len(v) != n:
        raise ValueError(f"must be a {n}-tuple")
    return v


class _WireModel(BaseModel):
    # model_id is a wire field, not pydantic API
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())


# -------------------------
# Wire models
# -------------------------
class SessionHeaderModel(_WireModel):
    protocol_version: Literal["1.0"] = Field(alias="protocolVersion")
    scenario_id: Optional[StrictStr] = Field(None, alias="scenarioId")

    def to_domain(self) -> SessionHeader:
        return SessionHeader(protocol_version=PROTOCOL_VERSION, scenario_id=self.scenario_id)


class PoseModel(_WireModel):
    position_lla_deg_m: Vec3 = Field(alias="positionLlaDegM")
    orientation_body_to_ned_quat: Quat4 = Field(alias="orientationBodyToNedQuat")

    @field_validator("position_lla_deg_m", mode="before")
    @classmethod
    def check_position_length(cls, v: Any) -> Any:
        return _check_length(v, 3)

    @field_validator("orientation_body_to_ned_quat", mode="before")
    @classmethod
    def check_orientation_length(cls, v: Any) -> Any:
        return _check_length(v, 4)

    def to_domain(self) -> Pose:
        return Pose(self.position_lla_deg_m, self.orientation_body_to_ned_quat)


class EntityStateModel(_WireModel):
    id: NonEmptyStr
    kind: EntityKind
    domain: Domain
    model_id: NonEmptyStr = Field(alias="modelId")
    pose: PoseModel
    velocity_ecef: Optional[Vec3] = Field(None, alias="velocityEcef")
    metadata: Optional[Dict[str, MetadataScalar]] = None

    @field_validator("velocity_ecef", mode="before")
    @classmethod
    def check_velocity_length(cls, v: Any) -> Any:
        return v if v is None else _check_length(v, 3)

    def to_domain(self) -> EntityState:
        return EntityState(
            id=self.id,
            kind=self.kind,
            domain=self.domain,
            model_id=self.model_id,
            pose=self.pose.to_domain(),
            velocity_ecef=None if self.velocity_ecef is None else tuple(float(v) for v in self.velocity_ecef),  # type: ignore[arg-type]
            metadata=None if self.metadata is None else dict(self.metadata),
        )


class CombatEventModel(_WireModel):
    id: NonEmptyStr
    type: CombatEventType
    source_id: Optional[StrictStr] = Field(None, alias="sourceId")
    target_id: Optional[StrictStr] = Field(None, alias="targetId")
    position_lla_deg_m: Vec3 = Field(alias="positionLlaDegM")
    t: Number

    @field_validator("position_lla_deg_m", mode="before")
    @classmethod
    def check_position_length(cls, v: Any) -> Any:
        return _check_length(v, 3)

    def to_domain(self) -> CombatEvent:
        return CombatEvent(
            id=self.id,
            type=self.type,
            source_id=self.source_id,
            target_id=self.target_id,
            position_lla_deg_m=tuple(float(v) for v in self.position_lla_deg_m),  # type: ignore[arg-type]
            t=float(self.t),
        )


class FrameMessageModel(_WireModel):
    # field order is validation order: t is reported before entities
    t: Number
    entities: List[EntityStateModel]
    events: Optional[List[CombatEventModel]] = None

    def to_domain(self) -> FrameMessage:
        return FrameMessage(
            t=float(self.t),
            entities=[e.to_domain() for e in self.entities],
            events=None if self.events is None else [ev.to_domain() for ev in self.events],
        )


# -------------------------
# Entry points
# -------------------------
def parse_session_header(raw: Any) -> SessionHeader:
    try:
        return SessionHeaderModel.model_validate(raw).to_domain()
    except ValidationError as e:
        raise SchemaValidationError.from_validation_error("header", e) from None


def parse_frame_message(raw: Any) -> FrameMessage:
    try:
        return FrameMessageModel.model_validate(raw).to_domain()
    except ValidationError as e:
        raise SchemaValidationError.from_validation_error("frame", e) from None


def try_parse_frame_message(raw: Any) -> ParseResult:
    try:
        return ParseResult(ok=True, value=parse_frame_message(raw))
    except SchemaValidationError as e:
        return ParseResult(ok=False, error=e)
