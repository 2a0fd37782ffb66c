from __future__ import annotations

"""
Headless playback service: load frames, run the host tick loop, and append
one metrics row per tick (sim time, camera pose, entity/event counts) to
logs/playback.jsonl.

Examples:
  # Built-in demo scenario, orbit camera, 60 Hz, 30 s of wall time
  python -m playback.service --demo --mode orbit --fps 60 --duration 30

  # Replay an NDJSON file locked onto one entity with the chase preset
  python -m playback.service --source data/tracks.ndjson --mode entityLock \
      --target air-eagle-01 --preset chase --no-realtime
"""

import argparse
import time
from pathlib import Path
from typing import Any, Dict, Optional

from camera.controller import CameraMode, CameraPreset
from common.config import load_config
from common.logging_setup import get_logger, setup_logging
from common.utils import RateTimer, write_metrics_row
from ingest.frames import load_frames
from playback.scenario import generate_demo_scenario
from playback.session import PlaybackSession, SimulationContext, TickResult
from timeline.store import TimelineStore


log = get_logger("playback.service")


def build_store(P: Dict[str, Any], source: Optional[str], demo: bool) -> TimelineStore:
    store = TimelineStore(event_half_window_sec=P["playback"]["event_half_window_sec"])
    source = source or P["ingest"].get("source")
    if demo or not source:
        store.set_frames(generate_demo_scenario())
        log.info("Demo scenario loaded", extra={"extra": {"frames": store.frame_count}})
        return store
    header, frames = load_frames(source, timeout=float(P["ingest"]["timeout_s"]))
    store.set_frames(frames)
    log.info(
        "Frames loaded",
        extra={"extra": {
            "source": source,
            "frames": store.frame_count,
            "scenario": header.scenario_id if header else None,
        }},
    )
    return store


def metrics_row(res: TickResult, hz: float) -> Dict[str, Any]:
    return {
        "t": round(res.t, 4),
        "entities": len(res.frame.entities),
        "events": [ev.id for ev in res.frame.events],
        "lock": res.lock_entity_id,
        "eye": [round(v, 6) for v in res.camera.eye.tolist()],
        "target": [round(v, 6) for v in res.camera.target.tolist()],
        "chase": res.camera.chase_enabled,
        "tick_hz": round(hz, 2),
    }


def main() -> None:
    ap = argparse.ArgumentParser(description="Tactical track playback (headless)")
    ap.add_argument("--config", default=None, help="YAML config (default config/params.yaml or $TV_CONFIG)")
    ap.add_argument("--source", default=None, help="NDJSON/JSON frame file or http(s) URL")
    ap.add_argument("--demo", action="store_true", help="Use the built-in demo scenario")
    ap.add_argument("--mode", choices=[m.value for m in CameraMode], default=None, help="Camera mode")
    ap.add_argument("--target", default=None, help="Entity id for entityLock mode")
    ap.add_argument("--preset", choices=[p.value for p in CameraPreset], default=None, help="Preset applied on first tick")
    ap.add_argument("--time-scale", type=float, default=None, help="Playback speed multiplier")
    ap.add_argument("--fps", type=float, default=60.0, help="Host tick rate (Hz)")
    ap.add_argument("--duration", type=float, default=10.0, help="Stop after N seconds of wall time")
    ap.add_argument("--no-realtime", action="store_true", help="Do not sleep between ticks")
    args = ap.parse_args()

    P = load_config(args.config)
    setup_logging(P["logging"]["level"], force=True)

    store = build_store(P, args.source, args.demo)
    session = PlaybackSession.from_config(store, P)
    if args.time_scale is not None:
        session.set_time_scale(args.time_scale)

    mode = CameraMode(args.mode or P["camera"]["mode"])
    preset_name = args.preset or P["camera"].get("preset")
    preset: Optional[CameraPreset] = CameraPreset(preset_name) if preset_name else None

    metrics_path = Path(P["logging"]["metrics_file"])
    period = 1.0 / max(1.0, float(args.fps))
    n_ticks = int(args.duration / period)
    rate = RateTimer(window=50)
    seen_events = set()

    log.info(
        "Playback started",
        extra={"extra": {"mode": mode.value, "range": store.get_range().to_dict(), "ticks": n_ticks}},
    )
    for k in range(n_ticks):
        t0 = time.perf_counter()
        ctx = SimulationContext(
            camera_mode=mode,
            camera_target_entity_id=args.target,
            camera_preset_request=preset if k == 0 else None,
        )
        res = session.tick(period, ctx)
        write_metrics_row(metrics_path, metrics_row(res, rate.tick()))
        for ev in res.frame.events:
            if ev.id not in seen_events:
                seen_events.add(ev.id)
                log.info("Event", extra={"extra": ev.to_dict()})

        if not args.no_realtime:
            sleep_for = period - (time.perf_counter() - t0)
            if sleep_for > 0:
                time.sleep(sleep_for)

    log.info("Playback finished", extra={"extra": {"t": session.current_time}})


if __name__ == "__main__":
    main()
