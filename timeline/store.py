from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from common.geo import ecef_to_lla, lla_to_ecef
from common.logging_setup import get_logger
from common.quat import lerp3, quat_normalize, quat_slerp
from common.types import (
    CombatEvent,
    EntityState,
    FrameMessage,
    Pose,
    RuntimeEntityState,
    RuntimeFrame,
)


log = get_logger("timeline")

# Bridges the gap between per-tick samples without reporting stale events.
EVENT_HALF_WINDOW_SEC = 0.15


@dataclass(slots=True)
class TimeRange:
    start: float = 0.0
    end: float = 0.0
    duration: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"start": self.start, "end": self.end, "duration": self.duration}


@dataclass(slots=True)
class _EntityTrack:
    """Time-ordered samples of one entity, kept as parallel arrays for bisect."""
    times: List[float] = field(default_factory=list)
    states: List[EntityState] = field(default_factory=list)


def _runtime_copy(state: EntityState) -> RuntimeEntityState:
    return RuntimeEntityState(state=state.copy(), position_ecef_m=lla_to_ecef(state.pose.position_lla_deg_m))


def _interpolate(t0: float, a: EntityState, t1: float, b: EntityState, t: float) -> RuntimeEntityState:
    """
    Position is interpolated linearly in ECEF, orientation by slerp. Identity
    fields come from the later sample, as does pose.position_lla_deg_m;
    position_ecef_m is the interpolated position.
    """
    if t0 == t1:
        return _runtime_copy(a)
    alpha = min(1.0, max(0.0, (t - t0) / (t1 - t0)))
    pos = lerp3(lla_to_ecef(a.pose.position_lla_deg_m), lla_to_ecef(b.pose.position_lla_deg_m), alpha)
    rot = quat_slerp(
        quat_normalize(a.pose.orientation_body_to_ned_quat),
        quat_normalize(b.pose.orientation_body_to_ned_quat),
        alpha,
    )
    out = b.copy()
    out.pose = Pose(b.pose.position_lla_deg_m, tuple(float(v) for v in rot))  # type: ignore[arg-type]
    return RuntimeEntityState(state=out, position_ecef_m=pos)


class TimelineStore:
    """
    In-memory history of frames with a per-entity time index.

    Every mutation rebuilds the indices from the sorted frame list. Expected
    usage is one writer (ingestion) and one reader (the per-tick sampler);
    there is no internal locking.
    """

    def __init__(self, event_half_window_sec: float = EVENT_HALF_WINDOW_SEC):
        self.event_half_window_sec = float(event_half_window_sec)
        self._frames: List[FrameMessage] = []
        self._entity_index: Dict[str, _EntityTrack] = {}
        self._events: List[CombatEvent] = []
        self._event_times: List[float] = []

    # -------------------------
    # Mutation
    # -------------------------
    def set_frames(self, frames: Iterable[FrameMessage]) -> None:
        self._frames = sorted(frames, key=lambda f: f.t)
        self._rebuild_indices()

    def append_frame(self, frame: FrameMessage) -> None:
        self.extend_frames([frame])

    def extend_frames(self, frames: Iterable[FrameMessage]) -> None:
        """Append several frames with a single index rebuild."""
        self._frames.extend(frames)
        self._frames.sort(key=lambda f: f.t)
        self._rebuild_indices()

    def clear(self) -> None:
        self.set_frames([])

    # -------------------------
    # Queries
    # -------------------------
    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def entity_ids(self) -> List[str]:
        return list(self._entity_index.keys())

    def samples_for(self, entity_id: str) -> List[tuple]:
        """(t, EntityState) pairs for one entity, oldest first."""
        track = self._entity_index.get(entity_id)
        if track is None:
            return []
        return list(zip(track.times, track.states))

    def get_range(self) -> TimeRange:
        if not self._frames:
            return TimeRange()
        start = self._frames[0].t
        end = self._frames[-1].t
        return TimeRange(start=start, end=end, duration=end - start)

    def sample_at_runtime(self, t: float) -> RuntimeFrame:
        entities: List[RuntimeEntityState] = []
        for track in self._entity_index.values():
            if not track.times:
                continue
            right = bisect_right(track.times, t)
            if right <= 0:
                entities.append(_runtime_copy(track.states[0]))
            elif right >= len(track.times):
                # Duplicate final timestamps resolve to the first of them
                last = bisect_left(track.times, track.times[-1])
                entities.append(_runtime_copy(track.states[last]))
            else:
                entities.append(
                    _interpolate(
                        track.times[right - 1],
                        track.states[right - 1],
                        track.times[right],
                        track.states[right],
                        t,
                    )
                )
        return RuntimeFrame(t=t, entities=entities, events=self.events_near(t, self.event_half_window_sec))

    def sample_at(self, t: float) -> FrameMessage:
        """Geographic (wire-shaped) view of sample_at_runtime."""
        runtime = self.sample_at_runtime(t)
        entities: List[EntityState] = []
        for ent in runtime.entities:
            state = ent.state.copy()
            state.pose = Pose(ecef_to_lla(ent.position_ecef_m), state.pose.orientation_body_to_ned_quat)
            entities.append(state)
        return FrameMessage(t=t, entities=entities, events=runtime.events)

    def events_near(self, t: float, half_window_sec: float) -> List[CombatEvent]:
        """Events with time in the closed window [t - w, t + w]."""
        if not self._events:
            return []
        lo = bisect_left(self._event_times, t - half_window_sec)
        hi = bisect_right(self._event_times, t + half_window_sec)
        return self._events[lo:hi]

    # -------------------------
    # Index maintenance
    # -------------------------
    def _rebuild_indices(self) -> None:
        index: Dict[str, List[tuple]] = {}
        events: List[CombatEvent] = []
        for frame in self._frames:
            for ent in frame.entities:
                index.setdefault(ent.id, []).append((frame.t, ent.copy()))
            if frame.events:
                events.extend(frame.events)

        self._entity_index = {}
        for entity_id, samples in index.items():
            samples.sort(key=lambda s: s[0])
            self._entity_index[entity_id] = _EntityTrack(
                times=[s[0] for s in samples],
                states=[s[1] for s in samples],
            )
        events.sort(key=lambda ev: ev.t)
        self._events = events
        self._event_times = [ev.t for ev in events]
        log.debug(
            "Timeline indices rebuilt",
            extra={"extra": {"frames": len(self._frames), "entities": len(self._entity_index), "events": len(events)}},
        )
