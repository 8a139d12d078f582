# soundboard/sync/clip_state.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

from soundboard.models.catalog import ClipKey
from soundboard.models.events import ClipSignal
from soundboard.sync.bus import KeyedBus

log = logging.getLogger("sync.clip")


class PlaybackState(str, Enum):
    STOPPED = "stopped"
    PENDING = "pending"
    STARTED = "started"


@dataclass(frozen=True)
class Affordance:
    action: Optional[str]  # "play" | "stop" | None while pending
    interactive: bool
    card_class: str


_AFFORDANCES = {
    PlaybackState.STOPPED: Affordance("play", True, "card bg-light text-dark"),
    PlaybackState.STARTED: Affordance("stop", True, "card bg-success text-light"),
    PlaybackState.PENDING: Affordance(None, False, "card bg-secondary text-light"),
}


def affordance_for(state: PlaybackState) -> Affordance:
    return _AFFORDANCES[state]


class CommandSink(Protocol):
    def play(self, coll_id: str, clip_id: str) -> None: ...

    def stop(self, coll_id: str, clip_id: str) -> None: ...


StateListener = Callable[["ClipStateMachine", PlaybackState], None]


class ClipStateMachine:
    """
    Playback state of one on-screen clip.

    Stopped/Started only come from the server (bus deliveries, last one
    wins). Pending is local: set when the user asks for something and held
    until the server answers.

    The bus subscription lives exactly as long as the element is mounted:
    use `with machine:` (or `mount()` / `unmount()` in a try/finally).
    """

    def __init__(
        self,
        key: ClipKey,
        bus: KeyedBus,
        gateway: CommandSink,
        *,
        initial: PlaybackState = PlaybackState.STOPPED,
        on_change: Optional[StateListener] = None,
        pending_timeout_s: Optional[float] = None,
    ) -> None:
        self.key = key
        self.bus = bus
        self.gateway = gateway
        self.on_change = on_change
        self.pending_timeout_s = pending_timeout_s

        self._state = initial
        self._mounted = False
        self._pending_timer: Optional[asyncio.TimerHandle] = None

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def affordance(self) -> Affordance:
        return affordance_for(self._state)

    @property
    def mounted(self) -> bool:
        return self._mounted

    # =========================
    # Lifecycle
    # =========================

    def mount(self) -> "ClipStateMachine":
        if not self._mounted:
            self.bus.register(self.key, self.on_event)
            self._mounted = True
        return self

    def unmount(self) -> None:
        if not self._mounted:
            return
        self._mounted = False
        self._cancel_pending_timer()
        self.bus.unregister(self.key, self.on_event)

    def __enter__(self) -> "ClipStateMachine":
        return self.mount()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.unmount()

    # =========================
    # User actions
    # =========================

    def play(self) -> None:
        self._set(PlaybackState.PENDING)
        self._arm_pending_timer()
        self.gateway.play(*self.key)

    def stop(self) -> None:
        if self._state == PlaybackState.STOPPED:
            return
        self._set(PlaybackState.PENDING)
        self._arm_pending_timer()
        self.gateway.stop(*self.key)

    def click(self) -> None:
        """Act on whatever the current affordance offers."""
        action = self.affordance.action
        if action == "play":
            self.play()
        elif action == "stop":
            self.stop()

    # =========================
    # Bus deliveries
    # =========================

    def on_event(self, signal: ClipSignal) -> None:
        if signal.event == "Started":
            self._set(PlaybackState.STARTED)
        elif signal.event == "Stopped":
            self._set(PlaybackState.STOPPED)

    # =========================
    # Internals
    # =========================

    def _set(self, state: PlaybackState) -> None:
        if state != PlaybackState.PENDING:
            self._cancel_pending_timer()
        if state == self._state:
            return
        previous = self._state
        self._state = state
        log.debug(
            "clip_state_changed",
            extra={"key": self.key, "from": previous.value, "to": state.value},
        )
        if self.on_change is not None:
            self.on_change(self, state)

    def _arm_pending_timer(self) -> None:
        self._cancel_pending_timer()
        if self.pending_timeout_s is None:
            return
        loop = asyncio.get_running_loop()
        self._pending_timer = loop.call_later(self.pending_timeout_s, self._pending_expired)

    def _cancel_pending_timer(self) -> None:
        if self._pending_timer is not None:
            self._pending_timer.cancel()
            self._pending_timer = None

    def _pending_expired(self) -> None:
        self._pending_timer = None
        if self._state == PlaybackState.PENDING:
            log.warning("clip_pending_timeout", extra={"key": self.key})
            self._set(PlaybackState.STOPPED)
