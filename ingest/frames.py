from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

import requests

from common.logging_setup import get_logger
from common.schema import (
    ParseResult,
    SchemaValidationError,
    parse_frame_message,
    parse_session_header,
    try_parse_frame_message,
)
from common.types import FrameMessage, SessionHeader
from timeline.store import TimelineStore


log = get_logger("ingest")

NDJSON_SUFFIXES = (".ndjson", ".jsonl")


@dataclass(slots=True)
class IngestReport:
    """Per-batch outcome: how many frames went into the store and why others did not."""
    accepted: int = 0
    rejected: int = 0
    errors: List[Tuple[int, str]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "accepted": self.accepted,
            "rejected": self.rejected,
            "errors": [{"index": i, "error": msg} for i, msg in self.errors],
        }


def _decode_json(text: str, path: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise SchemaValidationError(path, f"is not valid JSON ({e.msg})") from None


# -------------------------
# Strict parsers (first failure aborts)
# -------------------------
def parse_ndjson_frames(text: str) -> List[FrameMessage]:
    frames: List[FrameMessage] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            frames.append(parse_frame_message(_decode_json(line, "frame")))
        except SchemaValidationError as e:
            raise e.in_context(f"Invalid NDJSON frame at line {lineno}") from e
    return frames


def parse_json_frames(text: str) -> List[FrameMessage]:
    parsed = _decode_json(text, "frames")
    if not isinstance(parsed, list):
        raise SchemaValidationError("frames", "must be a JSON array of frame messages")
    frames: List[FrameMessage] = []
    for i, item in enumerate(parsed):
        try:
            frames.append(parse_frame_message(item))
        except SchemaValidationError as e:
            raise e.in_context(f"Invalid frame at index {i}") from e
    return frames


# -------------------------
# Per-item outcomes (batch never aborts)
# -------------------------
def iter_ndjson_outcomes(text: str) -> List[ParseResult]:
    out: List[ParseResult] = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            raw = _decode_json(line, "frame")
        except SchemaValidationError as e:
            out.append(ParseResult(ok=False, error=e))
            continue
        out.append(try_parse_frame_message(raw))
    return out


def parse_json_outcomes(items: Iterable[Any]) -> List[ParseResult]:
    return [try_parse_frame_message(item) for item in items]


def ingest_outcomes(store: TimelineStore, outcomes: List[ParseResult]) -> IngestReport:
    """Append every valid frame to the store with one rebuild; report the rest."""
    report = IngestReport()
    good: List[FrameMessage] = []
    for i, res in enumerate(outcomes):
        if res.ok and res.value is not None:
            good.append(res.value)
            report.accepted += 1
        else:
            report.rejected += 1
            report.errors.append((i, str(res.error)))
            log.warning("Rejected frame", extra={"extra": {"index": i, "error": str(res.error)}})
    if good:
        store.extend_frames(good)
    return report


# -------------------------
# Sources
# -------------------------
def split_session_header(text: str) -> Tuple[Optional[SessionHeader], str]:
    """
    A first NDJSON line carrying protocolVersion is the session header.

    Raises SchemaValidationError (path `header.*`) when that header is not
    v1.0; callers reject the whole body. A first line that is not JSON is
    left in place so the frame parser reports it with its line number.
    """
    lines = text.splitlines()
    for idx, line in enumerate(lines):
        if not line.strip():
            continue
        try:
            raw = json.loads(line)
        except json.JSONDecodeError:
            break
        if isinstance(raw, dict) and "protocolVersion" in raw:
            header = parse_session_header(raw)
            lines[idx] = ""  # keep line numbers stable for error messages
            return header, "\n".join(lines)
        break
    return None, text


def parse_frames_text(text: str, ndjson: bool) -> Tuple[Optional[SessionHeader], List[FrameMessage]]:
    if ndjson:
        header, body = split_session_header(text)
        return header, parse_ndjson_frames(body)
    return None, parse_json_frames(text)


def load_frames_file(path: str) -> Tuple[Optional[SessionHeader], List[FrameMessage]]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Frame file not found: {path}")
    header, frames = parse_frames_text(p.read_text(), ndjson=p.suffix.lower() in NDJSON_SUFFIXES)
    log.info("Loaded frames", extra={"extra": {"path": str(p), "frames": len(frames)}})
    return header, frames


def fetch_frames(url: str, timeout: float = 10.0) -> Tuple[Optional[SessionHeader], List[FrameMessage]]:
    """Download a bulk NDJSON / JSON frame file."""
    r = requests.get(url, timeout=timeout)
    if r.status_code != 200:
        raise RuntimeError(f"Frame source error {r.status_code}: {r.text[:200]}")
    ctype = r.headers.get("Content-Type", "")
    ndjson = url.lower().endswith(NDJSON_SUFFIXES) or "ndjson" in ctype
    header, frames = parse_frames_text(r.text, ndjson=ndjson)
    log.info("Fetched frames", extra={"extra": {"url": url, "frames": len(frames)}})
    return header, frames


def load_frames(source: str, timeout: float = 10.0) -> Tuple[Optional[SessionHeader], List[FrameMessage]]:
    if source.startswith(("http://", "https://")):
        return fetch_frames(source, timeout=timeout)
    return load_frames_file(source)
