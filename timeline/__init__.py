"""
Timeline — indexed playback history

Provides:
- TimelineStore: sorted frame history with a per-entity time index
- Point-in-time sampling (ECEF lerp + quaternion slerp between bracketing samples)
- Windowed lookup of instantaneous combat events

Usage:
    from timeline import TimelineStore
    store = TimelineStore()
    store.set_frames(frames)
    runtime = store.sample_at_runtime(12.5)
"""
from .store import EVENT_HALF_WINDOW_SEC, TimeRange, TimelineStore

__all__ = ["EVENT_HALF_WINDOW_SEC", "TimeRange", "TimelineStore"]
