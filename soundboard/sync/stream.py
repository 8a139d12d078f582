# soundboard/sync/stream.py
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, List, Optional

import httpx

from soundboard.models.events import ClipSignal, PlaybackEvent, decode_message
from soundboard.sync.bus import KeyedBus, deliver

log = logging.getLogger("sync.stream")

EventObserver = Callable[[PlaybackEvent], None]
ReconnectHook = Callable[[], Awaitable[None]]


async def iter_sse_data(lines: AsyncIterator[str]) -> AsyncIterator[str]:
    """
    Yield the `data` of each server-sent event.

    Multi-line data is joined with "\\n"; comments (": keepalive") and other
    fields (event/id/retry) are ignored.
    """
    buf: List[str] = []
    async for line in lines:
        line = line.rstrip("\r")
        if not line:
            if buf:
                yield "\n".join(buf)
                buf = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if field != "data":
            continue
        if value.startswith(" "):
            value = value[1:]
        buf.append(value)

    # stream ended mid-event: it was never dispatched, drop it
    if buf:
        log.debug("sse_partial_event_dropped")


class StreamConsumer:
    """
    Consumes the server push stream and routes events onto the bus.

    - one connection at a time, reconnected after `reconnect_delay_s`
    - no replay of events missed while disconnected
    - `stop()` (closing the connection) is the only way to cancel
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        bus: KeyedBus,
        *,
        path: str = "/events",
        reconnect_delay_s: float = 1.0,
        observer: Optional[EventObserver] = None,
        on_reconnect: Optional[ReconnectHook] = None,
    ) -> None:
        self.client = client
        self.bus = bus
        self.path = path
        self.reconnect_delay_s = reconnect_delay_s
        self.observer = observer
        self.on_reconnect = on_reconnect

        self.connected = False
        self.connections = 0

        self._task: Optional[asyncio.Task] = None
        self._running = False

    # =========================
    # Lifecycle
    # =========================

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        log.info("stream_consumer_started", extra={"path": self.path})

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        log.info("stream_consumer_stopped")

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.consume_once()
                log.warning("stream_closed_by_server")
            except httpx.HTTPError as e:
                log.warning("stream_connection_error", extra={"error": str(e)})
            except Exception:
                log.exception("stream_consumer_error")

            if self._running:
                await asyncio.sleep(self.reconnect_delay_s)

    # =========================
    # Connection
    # =========================

    async def consume_once(self) -> None:
        """Hold one connection open until the server or transport ends it."""
        timeout = httpx.Timeout(self.client.timeout.connect, read=None)
        async with self.client.stream(
            "GET",
            self.path,
            headers={"Accept": "text/event-stream"},
            timeout=timeout,
        ) as r:
            r.raise_for_status()

            self.connected = True
            self.connections += 1
            log.info("stream_connected", extra={"connections": self.connections})

            try:
                if self.connections > 1 and self.on_reconnect is not None:
                    await self._resync()

                async for data in iter_sse_data(r.aiter_lines()):
                    self.handle_message(data)
            finally:
                self.connected = False

    async def _resync(self) -> None:
        try:
            await self.on_reconnect()
        except Exception:
            log.exception("stream_resync_failed")

    # =========================
    # Messages
    # =========================

    def handle_message(self, raw: str) -> int:
        """Decode one message and publish each event in order. Returns the count."""
        batch = decode_message(raw)
        for event in batch:
            if self.observer is not None:
                self.observer(event)
            deliver(self.bus, event.key, ClipSignal.from_event(event))
        return len(batch)
