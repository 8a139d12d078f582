from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from soundboard.core.config import settings
from soundboard.core.logging import setup_logging
from soundboard.server.hub import EventHub
from soundboard.server.library import Library, build_library
from soundboard.server.player import DurationProbe, PlaybackRegistry, probe_duration

from soundboard.server.api.routes_collection import router as collection_router
from soundboard.server.api.routes_playback import router as playback_router
from soundboard.server.api.routes_events import router as events_router

log = logging.getLogger("server")


def create_app(
    library: Optional[Library] = None,
    probe: DurationProbe = probe_duration,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        log.info("server_starting")

        lib = library if library is not None else build_library(settings)
        if not len(lib):
            raise RuntimeError("At least one kind of library directory must be provided.")

        app.state.library = lib
        app.state.hub = EventHub()
        app.state.player = PlaybackRegistry(app.state.hub, probe=probe)
        log.info("library_ready", extra={"collections": len(lib)})

        try:
            yield
        finally:
            try:
                await app.state.player.close()
            except Exception:
                log.exception("error_stopping_player")

            try:
                await app.state.hub.close()
            except Exception:
                log.exception("error_closing_hub")

    app = FastAPI(title="Soundboard", lifespan=lifespan)

    app.include_router(collection_router)
    app.include_router(playback_router)
    app.include_router(events_router)

    @app.get("/health")
    def health():
        return {
            "ok": True,
            "app": "Soundboard",
            "env": settings.app_env,
        }

    return app


app = create_app()
