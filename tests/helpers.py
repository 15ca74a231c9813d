"""Builders for fake backend responses."""

import asyncio
import json
from typing import AsyncIterator, Iterable, List

import httpx

BASE_URL = "http://testserver"


def sse_lines(*events: dict) -> List[str]:
    """Event-stream lines for the given event payloads."""
    return [f"data: {json.dumps(event)}\n\n" for event in events]


def event_stream_response(chunks: Iterable[str], delay_first: float = 0.0) -> httpx.Response:
    """A streaming response that yields ``chunks`` one at a time."""

    async def body() -> AsyncIterator[bytes]:
        if delay_first:
            await asyncio.sleep(delay_first)
        for chunk in chunks:
            yield chunk.encode("utf-8")

    return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=body())
