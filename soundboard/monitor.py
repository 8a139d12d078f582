# soundboard/monitor.py
"""
Headless soundboard view: mounts every clip of the catalog and logs each
state change with the affordance it would render.

    SOUNDBOARD_SERVER_URL=http://127.0.0.1:14181 soundboard-monitor
"""
from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import ExitStack
from typing import Optional

from soundboard.board import Board
from soundboard.core.config import Settings, settings as default_settings
from soundboard.core.errors import CatalogUnavailable
from soundboard.core.logging import setup_logging
from soundboard.sync.clip_state import ClipStateMachine, PlaybackState

log = logging.getLogger("monitor")


def _render(name: str):
    def on_change(clip: ClipStateMachine, state: PlaybackState) -> None:
        aff = clip.affordance
        log.info(
            "clip_render",
            extra={
                "clip": name,
                "key": clip.key,
                "state": state.value,
                "action": aff.action or "-",
            },
        )

    return on_change


async def run(settings: Settings, stop: Optional[asyncio.Event] = None) -> None:
    stop = stop or asyncio.Event()
    async with Board(settings) as board:
        with ExitStack() as stack:
            for coll in board.catalog.collections:
                log.info(
                    "collection",
                    extra={"id": coll.id, "collection": coll.name, "kind": coll.display_kind},
                )
                for clip in coll.clips:
                    machine = stack.enter_context(
                        board.mount(coll.id, clip.id, on_change=_render(clip.name))
                    )
                    log.info(
                        "clip",
                        extra={"clip": clip.name, "state": machine.state.value},
                    )
            await stop.wait()


def main() -> None:
    setup_logging(default_settings.log_level)
    try:
        asyncio.run(run(default_settings))
    except KeyboardInterrupt:
        pass
    except CatalogUnavailable as e:
        log.error("monitor_no_catalog", extra={"reason": e.reason})
        sys.exit(1)


if __name__ == "__main__":
    main()
