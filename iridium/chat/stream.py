"""Server-Sent Events writer for the UI message stream protocol."""

from __future__ import annotations

import json
import logging
from typing import Any

from aiohttp import web

logger = logging.getLogger(__name__)

STREAM_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
    "x-vercel-ai-ui-message-stream": "v1",
}


class UIMessageStream:
    """Writes chunks to the client as soon as they are produced.

    After the client disconnects, writes become no-ops so the caller can
    finish its work (the upstream model call is not cancelled).
    """

    def __init__(self, request: web.Request) -> None:
        self._request = request
        self._response = web.StreamResponse(status=200, headers=STREAM_HEADERS)
        self.disconnected = False
        self.chunks_sent = 0

    @property
    def response(self) -> web.StreamResponse:
        return self._response

    async def open(self) -> None:
        await self._response.prepare(self._request)

    async def _write(self, data: str) -> None:
        if self.disconnected:
            return
        try:
            await self._response.write(data.encode("utf-8"))
        except (ConnectionResetError, RuntimeError) as exc:
            # RuntimeError: aiohttp's "Cannot write to closing transport".
            self.disconnected = True
            logger.info("Client disconnected mid-stream: %s", exc)

    async def send(self, chunk: dict[str, Any]) -> None:
        await self._write(f"data: {json.dumps(chunk, separators=(',', ':'))}\n\n")
        self.chunks_sent += 1

    async def send_error(self, error_text: str, error_code: str) -> None:
        await self.send({"type": "error", "errorText": error_text, "errorCode": error_code})

    async def close(self) -> None:
        await self._write("data: [DONE]\n\n")
        if not self.disconnected:
            try:
                await self._response.write_eof()
            except (ConnectionResetError, RuntimeError):
                self.disconnected = True
