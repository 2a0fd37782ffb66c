from __future__ import annotations

import json
from typing import Callable, Optional, Union

import websockets
from websockets.exceptions import WebSocketException

from common.logging_setup import get_logger
from common.schema import SchemaValidationError, parse_frame_message, parse_session_header
from common.types import FrameMessage, SessionHeader


log = get_logger("ingest.stream")

FrameCallback = Callable[[FrameMessage], None]
ErrorCallback = Callable[[Exception], None]


class JsonStreamClient:
    """
    Streaming frame source over a WebSocket, one JSON frame per message.

    Nothing raises out of `connect`: malformed messages and connection
    failures go to `on_error` (or the log when no callback is given). Frames
    already handed to `on_frame` stay wherever the caller put them. A session
    header that is not v1.0 rejects the session: no further frames are
    delivered and `connect` stops reading.
    """

    def __init__(self) -> None:
        self._ws = None
        self.header: Optional[SessionHeader] = None
        self.frames_received = 0
        self.frames_dropped = 0
        self.errors = 0
        self.session_rejected = False

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def handle_message(
        self,
        message: Union[str, bytes],
        on_frame: FrameCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        try:
            raw = json.loads(message)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            self._report(on_error, SchemaValidationError("frame", f"is not valid JSON ({e})"))
            return
        if isinstance(raw, dict) and "protocolVersion" in raw:
            self._handle_header(raw, on_error)
            return
        if self.session_rejected:
            self.frames_dropped += 1
            return
        try:
            frame = parse_frame_message(raw)
        except SchemaValidationError as e:
            self._report(on_error, e)
            return
        self.frames_received += 1
        on_frame(frame)

    def _handle_header(self, raw: dict, on_error: Optional[ErrorCallback]) -> None:
        try:
            self.header = parse_session_header(raw)
        except SchemaValidationError as e:
            self.header = None
            self.session_rejected = True
            log.warning("Session header rejected", extra={"extra": {"error": str(e)}})
            self._report(on_error, e)
            return
        log.info("Session header received", extra={"extra": self.header.to_dict()})

    async def connect(self, url: str, on_frame: FrameCallback, on_error: Optional[ErrorCallback] = None) -> None:
        """Read until the server closes or `disconnect` is called."""
        await self.disconnect()
        self.session_rejected = False
        try:
            async with websockets.connect(url) as ws:
                self._ws = ws
                log.info("Stream connected", extra={"extra": {"url": url}})
                async for message in ws:
                    self.handle_message(message, on_frame, on_error)
                    if self.session_rejected:
                        break
        except (OSError, WebSocketException) as e:
            self._report(on_error, RuntimeError(f"WebSocket error: {url}: {e}"))
        finally:
            self._ws = None
            log.info("Stream closed", extra={"extra": {"url": url, "frames": self.frames_received}})

    async def disconnect(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()

    def _report(self, on_error: Optional[ErrorCallback], err: Exception) -> None:
        self.errors += 1
        if on_error is not None:
            on_error(err)
        else:
            log.warning("Stream error", extra={"extra": {"error": str(err)}})
