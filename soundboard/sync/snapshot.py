# soundboard/sync/snapshot.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from soundboard.core.errors import CatalogUnavailable
from soundboard.models.catalog import Catalog, ClipKey, Collection, RawId, clip_key
from soundboard.models.events import ClipSignal
from soundboard.sync.bus import KeyedBus, deliver
from soundboard.sync.clip_state import PlaybackState

log = logging.getLogger("sync.snapshot")

_collections = TypeAdapter(list[Collection])
_playing = TypeAdapter(list[tuple[RawId, RawId]])


@dataclass
class Snapshot:
    catalog: Catalog
    playing: FrozenSet[ClipKey] = field(default_factory=frozenset)

    def initial_states(self) -> Dict[ClipKey, PlaybackState]:
        return {
            key: PlaybackState.STARTED if key in self.playing else PlaybackState.STOPPED
            for key in self.catalog.keys()
        }

    def state_of(self, key: ClipKey) -> PlaybackState:
        return PlaybackState.STARTED if key in self.playing else PlaybackState.STOPPED


class SnapshotLoader:
    """
    One-shot read of the catalog and of what is playing right now.

    Runs once at startup; after that the event stream is the only source of
    changes.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    async def load(self) -> Snapshot:
        catalog = await self.load_catalog()
        playing = await self.load_playing()
        snapshot = Snapshot(catalog=catalog, playing=playing)
        log.info(
            "snapshot_loaded",
            extra={
                "collections": len(catalog.collections),
                "playing": len(playing),
            },
        )
        return snapshot

    async def load_catalog(self) -> Catalog:
        try:
            r = await self.client.get("/collection")
            r.raise_for_status()
            collections = _collections.validate_json(r.content)
        except httpx.HTTPError as e:
            log.error("snapshot_catalog_unavailable", extra={"error": str(e)})
            raise CatalogUnavailable(str(e)) from e
        except ValidationError as e:
            log.error("snapshot_catalog_invalid", extra={"error": str(e)})
            raise CatalogUnavailable("invalid catalog payload") from e

        return Catalog(collections=collections)

    async def load_playing(self) -> FrozenSet[ClipKey]:
        """Failures degrade to "nothing playing"; the stream corrects it later."""
        playing = await self.fetch_playing()
        return playing if playing is not None else frozenset()

    async def fetch_playing(self) -> Optional[FrozenSet[ClipKey]]:
        """The playing set, or None when the server could not tell us."""
        try:
            r = await self.client.get("/playing")
        except httpx.HTTPError as e:
            log.warning("snapshot_playing_unavailable", extra={"error": str(e)})
            return None

        if r.status_code == 404:
            # older servers have no /playing
            log.info("snapshot_playing_unsupported")
            return None

        if not r.is_success:
            log.warning("snapshot_playing_unavailable", extra={"status": r.status_code})
            return None

        try:
            pairs = _playing.validate_json(r.content)
        except ValidationError:
            log.warning("snapshot_playing_invalid")
            return None

        return frozenset(clip_key(coll_id, clip_id) for coll_id, clip_id in pairs)


def publish_playing(bus: KeyedBus, playing: Iterable[ClipKey]) -> int:
    """
    Deliver the playing set to already mounted clips.

    Started on an already Started clip is a no-op, so racing with the stream
    is harmless.
    """
    delivered = 0
    for key in playing:
        if deliver(bus, key, ClipSignal(event="Started")):
            delivered += 1
    return delivered
