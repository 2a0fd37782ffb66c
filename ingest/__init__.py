"""
Ingest — frame transports

Every transport validates one frame at a time into the same FrameMessage
shape before it reaches the TimelineStore:
- parse_ndjson_frames / parse_json_frames: strict bulk parsers
- iter_ndjson_outcomes / ingest_outcomes: per-item results for batches
- split_session_header: optional leading NDJSON session header
- load_frames: local file or http(s) URL (requests)
- JsonStreamClient: WebSocket stream (websockets)
"""
from .frames import (
    IngestReport,
    ingest_outcomes,
    iter_ndjson_outcomes,
    load_frames,
    parse_json_frames,
    parse_json_outcomes,
    parse_ndjson_frames,
    split_session_header,
)
from .stream import JsonStreamClient

__all__ = [
    "IngestReport",
    "JsonStreamClient",
    "ingest_outcomes",
    "iter_ndjson_outcomes",
    "load_frames",
    "parse_json_frames",
    "parse_json_outcomes",
    "parse_ndjson_frames",
    "split_session_header",
]
