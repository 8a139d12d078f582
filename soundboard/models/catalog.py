# soundboard/models/catalog.py
from __future__ import annotations

from typing import Dict, List, Literal, Tuple, Union

from pydantic import BaseModel, Field, field_validator

CollectionKind = Literal["Drops", "BackgroundMusic", "BattleMusic", "Fx", "Ambience"]

KIND_DISPLAY_NAME: Dict[str, str] = {
    "Drops": "Drops",
    "BackgroundMusic": "Background Music",
    "BattleMusic": "Battle Music",
    "Fx": "FX",
    "Ambience": "Ambience",
}

# (collection id, clip id); ids are normalized to str so the catalog
# ("0") and the event stream (0) address the same clip
ClipKey = Tuple[str, str]

RawId = Union[str, int]


def clip_key(coll_id: RawId, clip_id: RawId) -> ClipKey:
    return (str(coll_id), str(clip_id))


class Clip(BaseModel):
    id: str
    name: str

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v):
        return str(v) if isinstance(v, int) else v


class Collection(BaseModel):
    id: str
    name: str
    # any string; kinds outside CollectionKind display verbatim
    kind: str = "Fx"
    clips: List[Clip] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_str(cls, v):
        return str(v) if isinstance(v, int) else v

    @property
    def display_kind(self) -> str:
        return KIND_DISPLAY_NAME.get(self.kind, self.kind)

    def keys(self) -> List[ClipKey]:
        return [clip_key(self.id, clip.id) for clip in self.clips]


class Catalog(BaseModel):
    collections: List[Collection] = Field(default_factory=list)

    def keys(self) -> List[ClipKey]:
        return [key for coll in self.collections for key in coll.keys()]

    def get(self, coll_id: RawId) -> Collection | None:
        for coll in self.collections:
            if coll.id == str(coll_id):
                return coll
        return None
