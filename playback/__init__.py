"""
Playback — host loop and outer surfaces

- PlaybackSession: clock, trails and camera state advanced once per tick
- generate_demo_scenario: deterministic multi-domain demo frames
- service.py: headless CLI that runs the tick loop and writes JSONL metrics
- server.py: FastAPI app exposing the timeline (REST + WebSocket ingest)

Usage:
    from playback import PlaybackSession, SimulationContext
    session = PlaybackSession(store)
    result = session.tick(1 / 60, SimulationContext())
"""
from .scenario import generate_demo_scenario
from .session import PlaybackSession, SimulationContext, TickResult

__all__ = ["PlaybackSession", "SimulationContext", "TickResult", "generate_demo_scenario"]
