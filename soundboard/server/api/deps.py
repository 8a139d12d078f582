from __future__ import annotations

from fastapi import HTTPException, Request

from soundboard.server.hub import EventHub
from soundboard.server.library import Library, LibraryCollection
from soundboard.server.player import PlaybackRegistry


# =========================
# CORE STATE
# =========================

def get_library(request: Request) -> Library:
    return request.app.state.library


def get_player(request: Request) -> PlaybackRegistry:
    return request.app.state.player


def get_hub(request: Request) -> EventHub:
    return request.app.state.hub


# =========================
# LOOKUPS
# =========================

def require_collection(library: Library, coll_id: int) -> LibraryCollection:
    coll = library.get(coll_id)
    if coll is None:
        raise HTTPException(status_code=404, detail=f"Unknown collection {coll_id}")
    return coll
