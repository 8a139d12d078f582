# soundboard/services/gateway.py
from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Dict, Optional, Set
from urllib.parse import quote

import httpx

from soundboard.models.catalog import Collection, RawId

log = logging.getLogger("gateway")


class RequestGateway:
    """
    Fire-and-forget commands to the soundboard server.

    - Nothing is returned to the caller
    - Success shows up later on the event stream (or never)
    - Failures are logged and dropped
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client
        self._inflight: Set[asyncio.Task] = set()

    # =========================
    # PUBLIC API
    # =========================

    def play(self, coll_id: RawId, clip_id: RawId) -> None:
        self._send(f"/collection/{_seg(coll_id)}/clip/{_seg(clip_id)}/play")

    def stop(self, coll_id: RawId, clip_id: RawId) -> None:
        self._send(f"/collection/{_seg(coll_id)}/clip/{_seg(clip_id)}/stop")

    def stop_all(self) -> None:
        self._send("/stop_all")

    def set_gain(self, coll_id: RawId, gain: float) -> None:
        self._send(f"/collection/{_seg(coll_id)}/playback", {"gain": float(gain)})

    def play_random(self, collection: Collection) -> None:
        if not collection.clips:
            return
        clip = random.choice(collection.clips)
        self.play(collection.id, clip.id)

    # =========================
    # LIFECYCLE
    # =========================

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    async def drain(self) -> None:
        """Wait for every command sent so far to finish."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._inflight):
            task.cancel()
        await asyncio.gather(*list(self._inflight), return_exceptions=True)
        self._inflight.clear()

    # =========================
    # LOW LEVEL
    # =========================

    def _send(self, path: str, body: Optional[Dict[str, Any]] = None) -> None:
        task = asyncio.get_running_loop().create_task(self._post(path, body))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _post(self, path: str, body: Optional[Dict[str, Any]]) -> None:
        try:
            r = await self.client.post(path, json=body)
        except httpx.HTTPError as e:
            log.warning("command_failed", extra={"path": path, "error": str(e)})
            return

        if not r.is_success:
            log.warning(
                "command_rejected",
                extra={"path": path, "status": r.status_code},
            )
            return

        log.debug("command_sent", extra={"path": path})


def _seg(value: RawId) -> str:
    # ids are opaque: "/" or "?" inside one must not change the route
    return quote(str(value), safe="")
