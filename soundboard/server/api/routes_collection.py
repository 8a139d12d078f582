# soundboard/server/api/routes_collection.py
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from soundboard.models.catalog import Collection
from soundboard.server.api.deps import get_library, get_player, require_collection
from soundboard.server.library import Library
from soundboard.server.player import LOOPING_KINDS, PlaybackRegistry

log = logging.getLogger("api.collection")

router = APIRouter(prefix="/collection", tags=["collection"])


class PlaybackSettings(BaseModel):
    gain: float


# =====================================================
# CATALOG
# =====================================================
@router.get("", response_model=List[Collection])
async def list_collections(library: Library = Depends(get_library)):
    return library.to_api()


# =====================================================
# PLAY CLIP
# =====================================================
@router.post("/{coll_id}/clip/{clip_id}/play")
async def play_clip(
    coll_id: int,
    clip_id: int,
    library: Library = Depends(get_library),
    player: PlaybackRegistry = Depends(get_player),
):
    coll = require_collection(library, coll_id)
    path = library.clip_path(coll_id, clip_id)
    if path is None:
        raise HTTPException(status_code=404, detail=f"Unknown clip {coll_id}/{clip_id}")

    log.info("play_clip", extra={"coll_id": coll_id, "clip_id": clip_id})
    try:
        await player.play(coll_id, clip_id, path, loop=coll.kind in LOOPING_KINDS)
    except Exception:
        log.exception("play_clip_failed", extra={"coll_id": coll_id, "clip_id": clip_id})
        raise HTTPException(status_code=500, detail="Error playing clip")

    return {"ok": True}


# =====================================================
# STOP CLIP
# 👉 stopping a clip that is not playing is not an error
# =====================================================
@router.post("/{coll_id}/clip/{clip_id}/stop")
async def stop_clip(
    coll_id: int,
    clip_id: int,
    library: Library = Depends(get_library),
    player: PlaybackRegistry = Depends(get_player),
):
    if library.clip_path(coll_id, clip_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown clip {coll_id}/{clip_id}")

    stopped = await player.stop(coll_id, clip_id)
    return {"ok": True, "stopped": stopped}


# =====================================================
# COLLECTION GAIN
# =====================================================
@router.post("/{coll_id}/playback")
async def collection_playback(
    coll_id: int,
    body: PlaybackSettings,
    library: Library = Depends(get_library),
    player: PlaybackRegistry = Depends(get_player),
):
    require_collection(library, coll_id)
    gain = player.set_gain(coll_id, body.gain)
    return {"ok": True, "gain": gain}


@router.get("/{coll_id}/playback")
async def get_collection_playback(
    coll_id: int,
    library: Library = Depends(get_library),
    player: PlaybackRegistry = Depends(get_player),
):
    require_collection(library, coll_id)
    return {"gain": player.gain(coll_id)}
