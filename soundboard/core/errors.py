from __future__ import annotations


class SoundboardError(Exception):
    """Base error for the soundboard client."""


class CatalogUnavailable(SoundboardError):
    """
    The catalog could not be fetched or decoded.

    Without a catalog there is nothing to render, so this is the only
    failure that leaves the sync layer.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(f"catalog unavailable: {reason}")
        self.reason = reason
