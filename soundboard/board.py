# soundboard/board.py
from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

from soundboard.core.config import Settings, settings as default_settings
from soundboard.models.catalog import Catalog, ClipKey, RawId, clip_key
from soundboard.models.events import ClipSignal, PlaybackEvent, Started
from soundboard.services.gateway import RequestGateway
from soundboard.sync.bus import KeyedBus, deliver
from soundboard.sync.clip_state import ClipStateMachine, PlaybackState, StateListener
from soundboard.sync.snapshot import Snapshot, SnapshotLoader, publish_playing
from soundboard.sync.stream import StreamConsumer

log = logging.getLogger("board")


class Board:
    """
    Wires snapshot, stream, bus and gateway together for one soundboard.

        async with Board() as board:
            with board.mount("0", "3", on_change=render) as clip:
                ...
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or default_settings
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=self.settings.server_url,
            timeout=self.settings.request_timeout_s,
        )

        self.bus = KeyedBus()
        self.gateway = RequestGateway(self.client)
        self.loader = SnapshotLoader(self.client)
        self.stream = StreamConsumer(
            self.client,
            self.bus,
            reconnect_delay_s=self.settings.stream_reconnect_delay_s,
            observer=self._observe,
            on_reconnect=self.resync if self.settings.resync_on_reconnect else None,
        )

        self.snapshot: Optional[Snapshot] = None
        # last state the server told us about, per key (snapshot, then stream)
        self._known: Dict[ClipKey, PlaybackState] = {}

    # =========================
    # Lifecycle
    # =========================

    async def start(self) -> Snapshot:
        """
        Open the stream and load the snapshot (raises CatalogUnavailable).

        The stream connects while the snapshot is in flight; whichever of the
        two reaches a key last wins.
        """
        await self.stream.start()
        try:
            self.snapshot = await self.loader.load()
        except BaseException:
            await self.stream.stop()
            raise

        for key in self.snapshot.playing:
            self._known[key] = PlaybackState.STARTED
        publish_playing(self.bus, self.snapshot.playing)

        log.info("board_started")
        return self.snapshot

    async def stop(self) -> None:
        await self.stream.stop()
        await self.gateway.aclose()
        if self._owns_client:
            await self.client.aclose()
        log.info("board_stopped")

    async def __aenter__(self) -> "Board":
        try:
            await self.start()
        except BaseException:
            await self.stop()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # =========================
    # Clips
    # =========================

    @property
    def catalog(self) -> Catalog:
        return self.snapshot.catalog if self.snapshot else Catalog()

    def state_of(self, key: ClipKey) -> PlaybackState:
        return self._known.get(key, PlaybackState.STOPPED)

    def mount(
        self,
        coll_id: RawId,
        clip_id: RawId,
        *,
        on_change: Optional[StateListener] = None,
    ) -> ClipStateMachine:
        """
        Build the state machine for one clip element.

        It is not subscribed yet: enter it (`with board.mount(...) as clip`)
        or call `mount()` on it.
        """
        key = clip_key(coll_id, clip_id)
        return ClipStateMachine(
            key,
            self.bus,
            self.gateway,
            initial=self.state_of(key),
            on_change=on_change,
            pending_timeout_s=self.settings.pending_timeout_s,
        )

    def stop_all(self) -> None:
        self.gateway.stop_all()

    def set_gain(self, coll_id: RawId, gain: float) -> None:
        self.gateway.set_gain(coll_id, gain)

    def play_random(self, coll_id: RawId) -> None:
        coll = self.catalog.get(coll_id)
        if coll is None:
            log.warning("play_random_unknown_collection", extra={"coll_id": coll_id})
            return
        self.gateway.play_random(coll)

    # =========================
    # Stream hooks
    # =========================

    def _observe(self, event: PlaybackEvent) -> None:
        if isinstance(event, Started):
            self._known[event.key] = PlaybackState.STARTED
        else:
            self._known[event.key] = PlaybackState.STOPPED

    async def resync(self) -> None:
        """
        Re-read /playing after a reconnect and publish the difference.

        Only used when `resync_on_reconnect` is enabled.
        """
        playing = await self.loader.fetch_playing()
        if playing is None:
            log.warning("board_resync_skipped")
            return

        was_playing = {k for k, s in self._known.items() if s == PlaybackState.STARTED}

        for key in was_playing - playing:
            self._known[key] = PlaybackState.STOPPED
            deliver(self.bus, key, ClipSignal(event="Stopped"))
        for key in playing:
            self._known[key] = PlaybackState.STARTED
        publish_playing(self.bus, playing)

        log.info("board_resynced", extra={"playing": len(playing)})
