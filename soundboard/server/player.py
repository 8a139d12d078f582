# soundboard/server/player.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

import librosa

from soundboard.models.events import PlaybackEvent, Started, Stopped
from soundboard.server.hub import EventHub

log = logging.getLogger("server.player")

# kinds that restart when they reach the end instead of stopping
LOOPING_KINDS = {"BackgroundMusic", "Ambience"}

MIN_GAIN = 0.0
MAX_GAIN = 1.5

PlayingKey = Tuple[int, int]
DurationProbe = Callable[[Path], Awaitable[Optional[float]]]


async def probe_duration(path: Path) -> Optional[float]:
    """Clip length in seconds, or None if the file can not be read as audio."""
    try:
        return float(await asyncio.to_thread(librosa.get_duration, path=str(path)))
    except Exception as e:
        log.warning("duration_probe_failed", extra={"path": str(path), "error": str(e)})
        return None


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


@dataclass
class PlayingSound:
    path: Path
    duration: Optional[float]
    loop: bool
    end_task: Optional[asyncio.Task] = None


class PlaybackRegistry:
    """
    Timeline of what is playing, and the source of every playback event.

    - play emits Started (with duration when known)
    - a non-looping clip emits Stopped by itself when its duration elapses
    - stop / stop_all emit Stopped only for clips that were playing
    """

    def __init__(self, hub: EventHub, probe: DurationProbe = probe_duration) -> None:
        self.hub = hub
        self.probe = probe
        self._playing: Dict[PlayingKey, PlayingSound] = {}
        self._gain: Dict[int, float] = {}

    # =========================
    # Queries
    # =========================

    def playing(self) -> List[PlayingKey]:
        return sorted(self._playing)

    def is_playing(self, coll_id: int, clip_id: int) -> bool:
        return (coll_id, clip_id) in self._playing

    def gain(self, coll_id: int) -> float:
        return self._gain.get(coll_id, 1.0)

    # =========================
    # Controls
    # =========================

    async def play(self, coll_id: int, clip_id: int, path: Path, *, loop: bool = False) -> None:
        duration = await self.probe(path)
        key = (coll_id, clip_id)

        previous = self._playing.pop(key, None)
        if previous is not None:
            _cancel(previous)

        sound = PlayingSound(path=path, duration=duration, loop=loop)
        self._playing[key] = sound
        if duration is not None and not loop:
            sound.end_task = asyncio.create_task(self._finish(key, sound))

        log.info(
            "clip_started",
            extra={"coll_id": coll_id, "clip_id": clip_id, "duration": duration, "loop": loop},
        )
        await self.hub.publish([Started(coll_id=coll_id, clip_id=clip_id, duration=duration)])

    async def stop(self, coll_id: int, clip_id: int) -> bool:
        sound = self._playing.pop((coll_id, clip_id), None)
        if sound is None:
            return False

        _cancel(sound)
        log.info("clip_stopped", extra={"coll_id": coll_id, "clip_id": clip_id})
        await self.hub.publish([Stopped(coll_id=coll_id, clip_id=clip_id)])
        return True

    async def stop_all(self) -> int:
        stopped: List[PlaybackEvent] = []
        for (coll_id, clip_id), sound in sorted(self._playing.items()):
            _cancel(sound)
            stopped.append(Stopped(coll_id=coll_id, clip_id=clip_id))
        self._playing.clear()

        log.info("all_stopped", extra={"count": len(stopped)})
        await self.hub.publish(stopped)
        return len(stopped)

    def set_gain(self, coll_id: int, gain: float) -> float:
        applied = clamp(gain, MIN_GAIN, MAX_GAIN)
        self._gain[coll_id] = applied
        log.info("gain_set", extra={"coll_id": coll_id, "gain": applied})
        return applied

    async def close(self) -> None:
        for sound in self._playing.values():
            _cancel(sound)
        self._playing.clear()

    # =========================
    # Internals
    # =========================

    async def _finish(self, key: PlayingKey, sound: PlayingSound) -> None:
        await asyncio.sleep(sound.duration or 0.0)
        if self._playing.get(key) is not sound:
            return
        del self._playing[key]
        log.info("clip_finished", extra={"coll_id": key[0], "clip_id": key[1]})
        await self.hub.publish([Stopped(coll_id=key[0], clip_id=key[1])])


def _cancel(sound: PlayingSound) -> None:
    if sound.end_task is not None and not sound.end_task.done():
        sound.end_task.cancel()
