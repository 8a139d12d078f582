# soundboard/server/library.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from soundboard.core.config import Settings
from soundboard.models.catalog import Clip, Collection, CollectionKind

log = logging.getLogger("server.library")


@dataclass
class LibraryClip:
    id: int
    name: str
    path: Path


@dataclass
class LibraryCollection:
    id: int
    name: str
    kind: CollectionKind
    directory: Path
    clips: List[LibraryClip] = field(default_factory=list)

    @classmethod
    def from_dir(cls, directory: str | Path, kind: CollectionKind) -> "LibraryCollection":
        """
        One collection per directory, one clip per regular file.
        Files are sorted by name so clip ids survive a restart.
        """
        directory = Path(directory)
        files = sorted(p for p in directory.iterdir() if p.is_file())
        clips = [LibraryClip(id=i, name=p.name, path=p) for i, p in enumerate(files)]
        return cls(
            id=0,
            name=directory.name or "<unknown>",
            kind=kind,
            directory=directory,
            clips=clips,
        )

    def to_api(self) -> Collection:
        return Collection(
            id=str(self.id),
            name=self.name,
            kind=self.kind,
            clips=[Clip(id=str(c.id), name=c.name) for c in self.clips],
        )


class Library:
    def __init__(self) -> None:
        self.collections: List[LibraryCollection] = []

    def add_collection(self, coll: LibraryCollection) -> None:
        coll.id = len(self.collections)
        self.collections.append(coll)

    def get(self, coll_id: int) -> Optional[LibraryCollection]:
        if 0 <= coll_id < len(self.collections):
            return self.collections[coll_id]
        return None

    def clip_path(self, coll_id: int, clip_id: int) -> Optional[Path]:
        coll = self.get(coll_id)
        if coll is None or not 0 <= clip_id < len(coll.clips):
            return None
        return coll.clips[clip_id].path

    def to_api(self) -> List[Collection]:
        return [c.to_api() for c in self.collections]

    def __len__(self) -> int:
        return len(self.collections)


def build_library(settings: Settings) -> Library:
    library = Library()
    sources: List[tuple[List[str], CollectionKind]] = [
        (settings.fx, "Fx"),
        (settings.drops, "Drops"),
        (settings.battle_music, "BattleMusic"),
        (settings.ambience, "Ambience"),
        (settings.bgm, "BackgroundMusic"),
    ]
    for dirs, kind in sources:
        for d in dirs:
            coll = LibraryCollection.from_dir(d, kind)
            library.add_collection(coll)
            log.info(
                "collection_loaded",
                extra={"collection": coll.name, "kind": kind, "clips": len(coll.clips)},
            )
    return library
