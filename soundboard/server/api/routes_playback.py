# soundboard/server/api/routes_playback.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from soundboard.server.api.deps import get_player
from soundboard.server.player import PlaybackRegistry

log = logging.getLogger("api.playback")

router = APIRouter(tags=["playback"])


@router.get("/playing")
async def playing(player: PlaybackRegistry = Depends(get_player)):
    return [[coll_id, clip_id] for coll_id, clip_id in player.playing()]


@router.post("/stop_all")
async def stop_all(player: PlaybackRegistry = Depends(get_player)):
    log.info("stop_all")
    count = await player.stop_all()
    return {"ok": True, "stopped": count}
