# soundboard/server/hub.py
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Set

from soundboard.models.events import PlaybackEvent

log = logging.getLogger("server.hub")

Batch = Optional[List[PlaybackEvent]]


class EventHub:
    """
    In-memory fan-out of event batches to every open /events connection.

    A subscriber that falls `max_backlog` batches behind is dropped; its
    client reconnects and carries on without the missed events.
    """

    def __init__(self, max_backlog: int = 256) -> None:
        self.max_backlog = max_backlog
        self._queues: Set[asyncio.Queue] = set()
        self._lock = asyncio.Lock()

    @property
    def subscribers(self) -> int:
        return len(self._queues)

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator["asyncio.Queue[Batch]"]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_backlog)
        async with self._lock:
            self._queues.add(queue)
        log.info("events_subscribed", extra={"subscribers": len(self._queues)})
        try:
            yield queue
        finally:
            async with self._lock:
                self._queues.discard(queue)
            log.info("events_unsubscribed", extra={"subscribers": len(self._queues)})

    async def publish(self, events: List[PlaybackEvent]) -> None:
        if not events:
            return
        async with self._lock:
            dead = []
            for queue in self._queues:
                try:
                    queue.put_nowait(list(events))
                except asyncio.QueueFull:
                    dead.append(queue)

            for queue in dead:
                self._queues.discard(queue)
                _terminate(queue)
                log.warning("events_subscriber_dropped")

    async def close(self) -> None:
        """Tell every open stream to finish."""
        async with self._lock:
            for queue in self._queues:
                _terminate(queue)


def _terminate(queue: asyncio.Queue) -> None:
    # make room for the end marker; the backlog is lost either way
    while not queue.empty():
        queue.get_nowait()
    queue.put_nowait(None)
