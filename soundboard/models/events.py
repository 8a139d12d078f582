# soundboard/models/events.py
from __future__ import annotations

import json
import logging
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, RootModel, ValidationError

from soundboard.models.catalog import ClipKey, RawId, clip_key

log = logging.getLogger("models.events")

EventName = Literal["Started", "Stopped"]


# =========================
# PLAYBACK EVENTS (wire)
# =========================

class Started(BaseModel):
    coll_id: RawId
    clip_id: RawId
    # older servers do not send it
    duration: Optional[float] = None

    @property
    def key(self) -> ClipKey:
        return clip_key(self.coll_id, self.clip_id)


class Stopped(BaseModel):
    coll_id: RawId
    clip_id: RawId

    @property
    def key(self) -> ClipKey:
        return clip_key(self.coll_id, self.clip_id)


PlaybackEvent = Union[Started, Stopped]


class EventBatch(RootModel[List[PlaybackEvent]]):
    """Every push message is normalized to a batch, even single events."""

    def __iter__(self):
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)


def encode_event(event: PlaybackEvent) -> dict:
    """Externally tagged form: {"Started": {...}} / {"Stopped": {...}}."""
    tag = "Started" if isinstance(event, Started) else "Stopped"
    return {tag: event.model_dump(exclude_none=True)}


def encode_batch(events: List[PlaybackEvent]) -> str:
    return json.dumps([encode_event(e) for e in events])


# =========================
# BUS PAYLOAD
# =========================

class ClipSignal(BaseModel):
    """What a clip's handler receives from the bus."""

    event: EventName
    duration: Optional[float] = None

    @classmethod
    def from_event(cls, event: PlaybackEvent) -> "ClipSignal":
        if isinstance(event, Started):
            return cls(event="Started", duration=event.duration)
        return cls(event="Stopped")


# =========================
# DECODING
# =========================

def _decode_one(obj: Any) -> Optional[PlaybackEvent]:
    if not isinstance(obj, dict) or len(obj) != 1:
        log.warning("event_unexpected_shape", extra={"event": obj})
        return None

    tag, body = next(iter(obj.items()))
    model = {"Started": Started, "Stopped": Stopped}.get(tag)
    if model is None:
        log.warning("event_unknown_variant", extra={"variant": tag})
        return None

    try:
        return model.model_validate(body)
    except ValidationError:
        log.warning("event_invalid_body", extra={"variant": tag, "body": body})
        return None


def decode_message(raw: str | bytes) -> EventBatch:
    """
    Decode one push message into a batch.

    Accepts a single event object or an array of them. Anything that does not
    decode is dropped (and logged); a bad entry inside an array does not drop
    its siblings.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        log.warning("event_decode_error", extra={"raw": raw[:200]})
        return EventBatch([])

    items = data if isinstance(data, list) else [data]
    events = [e for e in (_decode_one(item) for item in items) if e is not None]
    return EventBatch(events)
