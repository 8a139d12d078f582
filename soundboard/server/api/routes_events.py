# soundboard/server/api/routes_events.py
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from soundboard.core.config import settings
from soundboard.models.events import encode_batch
from soundboard.server.api.deps import get_hub
from soundboard.server.hub import EventHub

log = logging.getLogger("api.events")

router = APIRouter(tags=["events"])


async def event_stream(
    request: Request,
    hub: EventHub,
    keepalive_s: float,
) -> AsyncIterator[str]:
    """
    Server-sent events: one `data:` line per batch, each a JSON array of
    {"Started": {...}} / {"Stopped": {...}} objects.
    """
    async with hub.subscribe() as queue:
        yield ": connected\n\n"
        while True:
            if await request.is_disconnected():
                break
            try:
                batch = await asyncio.wait_for(queue.get(), timeout=keepalive_s)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            if batch is None:
                break
            yield f"data: {encode_batch(batch)}\n\n"


@router.get("/events")
async def events(request: Request, hub: EventHub = Depends(get_hub)):
    return StreamingResponse(
        event_stream(request, hub, settings.keepalive_s),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
