# soundboard/sync/bus.py
from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from soundboard.models.catalog import ClipKey
from soundboard.models.events import ClipSignal

log = logging.getLogger("sync.bus")

Handler = Callable[[ClipSignal], None]


class KeyedBus:
    """
    Directory from ClipKey to at most one handler.

    - register replaces (last registrant wins)
    - publish delivers synchronously or drops, never queues
    - no fan-out

    Meant to be used from a single event loop; every operation completes
    without awaiting, so none can be observed half-applied.
    """

    def __init__(self) -> None:
        self._handlers: Dict[ClipKey, Handler] = {}

    def register(self, key: ClipKey, handler: Handler) -> None:
        if key in self._handlers:
            log.debug("bus_handler_replaced", extra={"key": key})
        self._handlers[key] = handler

    def unregister(self, key: ClipKey, handler: Optional[Handler] = None) -> None:
        """
        Remove the handler for `key`.

        When `handler` is given, only remove it if it is still the registered
        one, so a stale element tearing down after its replacement mounted
        does not evict the replacement.
        """
        current = self._handlers.get(key)
        if current is None:
            return
        if handler is not None and current != handler:
            return
        del self._handlers[key]

    def publish(self, key: ClipKey, payload: ClipSignal) -> bool:
        handler = self._handlers.get(key)
        if handler is None:
            return False
        handler(payload)
        return True

    def is_registered(self, key: ClipKey) -> bool:
        return key in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


def deliver(bus: KeyedBus, key: ClipKey, payload: ClipSignal) -> bool:
    """
    Publish and absorb a failing handler, so one broken element can not
    stop delivery to the others or tear down its caller.
    """
    try:
        return bus.publish(key, payload)
    except Exception:
        log.exception("event_handler_failed", extra={"key": key})
        return False
