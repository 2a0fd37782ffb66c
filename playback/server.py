from __future__ import annotations

import json
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from common.config import load_config
from common.geo import ecef_to_world
from common.logging_setup import get_logger
from common.schema import SchemaValidationError, parse_frame_message, parse_session_header
from common.types import SessionHeader
from ingest.frames import (
    ingest_outcomes,
    iter_ndjson_outcomes,
    load_frames,
    parse_json_outcomes,
    split_session_header,
)
from playback.scenario import generate_demo_scenario
from timeline.store import TimelineStore


log = get_logger("playback.server")


def _validation_response(err: SchemaValidationError) -> JSONResponse:
    return JSONResponse({"error": "validation_error", "path": err.path, "detail": str(err)}, status_code=422)


def create_app(store: TimelineStore) -> FastAPI:
    """
    Render-facing API over one TimelineStore.

    Reads sample the store; writes (POST /frames, WS /ws/frames) validate
    first and only append frames that pass, so a bad message never disturbs
    the last-known-good history.
    """
    app = FastAPI(title="Tactical Playback API", version="1.0.0")
    app.state.store = store
    app.state.header = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # local viewer tooling
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        header: Optional[SessionHeader] = app.state.header
        return {
            "status": "ok",
            "frames": store.frame_count,
            "entities": len(store.entity_ids),
            "session": header.to_dict() if header else None,
        }

    @app.get("/range")
    def time_range():
        return store.get_range().to_dict()

    @app.get("/sample")
    def sample(t: float = Query(...)):
        return store.sample_at(t).to_dict()

    @app.get("/runtime")
    def runtime(t: float = Query(...)):
        frame = store.sample_at_runtime(t)
        out = frame.to_dict()
        for ent, row in zip(frame.entities, out["entities"]):
            row["positionWorld"] = ecef_to_world(ent.position_ecef_m).tolist()
        return out

    @app.get("/events")
    def events(t: float = Query(...), window: Optional[float] = Query(None, ge=0.0)):
        w = store.event_half_window_sec if window is None else window
        return {"t": t, "window": w, "events": [ev.to_dict() for ev in store.events_near(t, w)]}

    @app.post("/session")
    async def session_header(request: Request):
        try:
            app.state.header = parse_session_header(await request.json())
        except SchemaValidationError as e:
            return _validation_response(e)
        except ValueError:
            # JSONDecodeError and UnicodeDecodeError
            raise HTTPException(status_code=400, detail="invalid_json")
        return app.state.header.to_dict()

    @app.post("/frames")
    async def post_frames(request: Request):
        """A single frame object (422 on failure) or an array (per-item report)."""
        try:
            body: Any = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="invalid_json")
        if isinstance(body, list):
            report = ingest_outcomes(store, parse_json_outcomes(body))
            return report.to_dict()
        try:
            frame = parse_frame_message(body)
        except SchemaValidationError as e:
            return _validation_response(e)
        store.append_frame(frame)
        return {"accepted": 1, "rejected": 0, "errors": []}

    @app.post("/frames/ndjson")
    async def post_ndjson(request: Request):
        """Per-line report; a leading session header that is not v1.0 rejects the whole body."""
        text = (await request.body()).decode("utf-8", errors="replace")
        try:
            header, text = split_session_header(text)
        except SchemaValidationError as e:
            log.warning("Rejected NDJSON session", extra={"extra": {"error": str(e)}})
            return _validation_response(e)
        if header is not None:
            app.state.header = header
        report = ingest_outcomes(store, iter_ndjson_outcomes(text))
        return report.to_dict()

    @app.websocket("/ws/frames")
    async def ws_frames(websocket: WebSocket):
        await websocket.accept()
        log.info("Stream client connected", extra={"extra": {"client": str(websocket.client)}})
        try:
            while True:
                message = await websocket.receive_text()
                ack: Dict[str, Any]
                try:
                    frame = parse_frame_message(json.loads(message))
                except json.JSONDecodeError as e:
                    ack = {"ok": False, "error": f"invalid_json: {e.msg}"}
                except SchemaValidationError as e:
                    ack = {"ok": False, "path": e.path, "error": str(e)}
                else:
                    store.append_frame(frame)
                    ack = {"ok": True, "t": frame.t}
                await websocket.send_json(ack)
        except WebSocketDisconnect:
            log.info("Stream client disconnected", extra={"extra": {"frames": store.frame_count}})

    return app


def _build_default_store(P: Dict[str, Any]) -> TimelineStore:
    store = TimelineStore(event_half_window_sec=P["playback"]["event_half_window_sec"])
    source = P["ingest"].get("source")
    if source:
        _, frames = load_frames(source, timeout=float(P["ingest"]["timeout_s"]))
        store.set_frames(frames)
    else:
        store.set_frames(generate_demo_scenario())
    return store


def build_app() -> FastAPI:
    """Factory for `uvicorn --factory playback.server:build_app`."""
    return create_app(_build_default_store(load_config()))


# -------- local dev entrypoint --------
if __name__ == "__main__":
    P = load_config()
    uvicorn.run(create_app(_build_default_store(P)), host=P["server"]["host"], port=int(P["server"]["port"]))
