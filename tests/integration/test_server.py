#!/usr/bin/env python3
"""
Integration test for the playback HTTP / WebSocket API
"""

import json
import os
import sys

import pytest
from fastapi.testclient import TestClient

# Add the project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from ingest.frames import parse_json_frames
from playback.server import create_app
from timeline.store import TimelineStore


def frame_dict(t, lon, events=None):
    d = {
        "t": t,
        "entities": [
            {
                "id": "sea-1",
                "kind": "platform",
                "domain": "sea",
                "modelId": "frigate_faceted",
                "pose": {"positionLlaDegM": [0.0, lon, 0.0], "orientationBodyToNedQuat": [0, 0, 0, 1]},
            }
        ],
    }
    if events is not None:
        d["events"] = events
    return d


IMPACT = {"id": "impact-1", "type": "impact", "targetId": "sea-1", "positionLlaDegM": [0.0, 10.0, 0.0], "t": 10.0}


@pytest.fixture
def client():
    store = TimelineStore()
    store.set_frames(parse_json_frames(json.dumps([frame_dict(0.0, 0.0), frame_dict(10.0, 10.0, [IMPACT])])))
    return TestClient(create_app(store))


class TestReadEndpoints:
    """GET endpoints"""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "ok"
        assert body["frames"] == 2
        assert body["entities"] == 1
        assert body["session"] is None

    def test_range(self, client):
        assert client.get("/range").json() == {"start": 0.0, "end": 10.0, "duration": 10.0}

    def test_sample_interpolates(self, client):
        r = client.get("/sample", params={"t": 5.0})
        assert r.status_code == 200
        lon = r.json()["entities"][0]["pose"]["positionLlaDegM"][1]
        assert lon == pytest.approx(5.0, abs=1e-9)

    def test_sample_requires_t(self, client):
        assert client.get("/sample").status_code == 422

    def test_runtime_has_ecef_and_world(self, client):
        ent = client.get("/runtime", params={"t": 0.0}).json()["entities"][0]
        assert ent["positionEcefM"] == pytest.approx([6378137.0, 0.0, 0.0])
        assert ent["positionWorld"] == pytest.approx([1.0, 0.0, 0.0])

    def test_events_default_window(self, client):
        body = client.get("/events", params={"t": 9.9}).json()
        assert body["window"] == 0.15
        assert [e["id"] for e in body["events"]] == ["impact-1"]
        assert client.get("/events", params={"t": 9.0}).json()["events"] == []

    def test_events_custom_window(self, client):
        body = client.get("/events", params={"t": 9.0, "window": 1.0}).json()
        assert [e["id"] for e in body["events"]] == ["impact-1"]


class TestWriteEndpoints:
    """POST endpoints"""

    def test_post_single_frame(self, client):
        r = client.post("/frames", json=frame_dict(20.0, 20.0))
        assert r.status_code == 200
        assert r.json()["accepted"] == 1
        assert client.get("/range").json()["end"] == 20.0

    def test_post_invalid_frame(self, client):
        bad = frame_dict(20.0, 20.0)
        bad["entities"][0]["pose"]["positionLlaDegM"][1] = "east"
        r = client.post("/frames", json=bad)
        assert r.status_code == 422
        assert r.json()["path"] == "frame.entities[0].pose.positionLlaDegM[1]"
        assert client.get("/health").json()["frames"] == 2

    def test_post_batch_per_item(self, client):
        r = client.post("/frames", json=[frame_dict(11.0, 11.0), {"t": "late"}, frame_dict(12.0, 12.0)])
        assert r.status_code == 200
        body = r.json()
        assert body["accepted"] == 2
        assert body["rejected"] == 1
        assert body["errors"][0]["index"] == 1
        assert client.get("/health").json()["frames"] == 4

    def test_post_invalid_json(self, client):
        r = client.post("/frames", content=b"{not json", headers={"Content-Type": "application/json"})
        assert r.status_code == 400

    def test_post_ndjson(self, client):
        text = "\n".join([json.dumps(frame_dict(11.0, 11.0)), "garbage", "", json.dumps(frame_dict(12.0, 12.0))])
        r = client.post("/frames/ndjson", content=text.encode(), headers={"Content-Type": "application/x-ndjson"})
        body = r.json()
        assert body["accepted"] == 2
        assert body["rejected"] == 1
        assert client.get("/range").json()["end"] == 12.0

    def test_post_non_utf8_body(self, client):
        r = client.post("/frames", content=b"\xff\xfe{", headers={"Content-Type": "application/json"})
        assert r.status_code == 400
        assert r.json()["detail"] == "invalid_json"
        r = client.post("/session", content=b"\xff\xfe{", headers={"Content-Type": "application/json"})
        assert r.status_code == 400

    def test_post_ndjson_bad_header_rejects_body(self, client):
        text = "\n".join([json.dumps({"protocolVersion": "2.0"}), json.dumps(frame_dict(11.0, 11.0))])
        r = client.post("/frames/ndjson", content=text.encode(), headers={"Content-Type": "application/x-ndjson"})
        assert r.status_code == 422
        assert r.json()["path"] == "header.protocolVersion"
        assert client.get("/health").json()["frames"] == 2
        assert client.get("/health").json()["session"] is None

    def test_post_ndjson_with_header(self, client):
        text = "\n".join([json.dumps({"protocolVersion": "1.0", "scenarioId": "drill"}), json.dumps(frame_dict(11.0, 11.0))])
        r = client.post("/frames/ndjson", content=text.encode(), headers={"Content-Type": "application/x-ndjson"})
        assert r.json() == {"accepted": 1, "rejected": 0, "errors": []}
        assert client.get("/health").json()["session"] == {"protocolVersion": "1.0", "scenarioId": "drill"}

    def test_session_header(self, client):
        r = client.post("/session", json={"protocolVersion": "1.0", "scenarioId": "drill"})
        assert r.status_code == 200
        assert client.get("/health").json()["session"] == {"protocolVersion": "1.0", "scenarioId": "drill"}

    def test_session_header_bad_version(self, client):
        r = client.post("/session", json={"protocolVersion": "0.9"})
        assert r.status_code == 422
        assert r.json()["path"] == "header.protocolVersion"


class TestWebSocket:
    """WS /ws/frames"""

    def test_stream_acks(self, client):
        with client.websocket_connect("/ws/frames") as ws:
            ws.send_text(json.dumps(frame_dict(15.0, 15.0)))
            assert ws.receive_json() == {"ok": True, "t": 15.0}

            ws.send_text(json.dumps({"t": 16.0, "entities": [{"id": ""}]}))
            ack = ws.receive_json()
            assert ack["ok"] is False
            assert ack["path"] == "frame.entities[0].id"

            ws.send_text("not json")
            assert ws.receive_json()["ok"] is False

        assert client.get("/range").json()["end"] == 15.0
