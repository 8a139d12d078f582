import asyncio

import httpx
import pytest

from soundboard.core.errors import CatalogUnavailable
from soundboard.models.events import ClipSignal
from soundboard.sync.clip_state import PlaybackState
from soundboard.sync.snapshot import SnapshotLoader, publish_playing


def load(server):
    async def scenario():
        async with server.client() as client:
            return await SnapshotLoader(client).load()

    return asyncio.run(scenario())


class TestSnapshotLoader:
    def test_initial_states(self, server):
        snapshot = load(server)

        assert [c.id for c in snapshot.catalog.collections] == ["C1"]
        assert snapshot.playing == frozenset({("C1", "A")})
        assert snapshot.initial_states() == {
            ("C1", "A"): PlaybackState.STARTED,
            ("C1", "B"): PlaybackState.STOPPED,
        }

    def test_reads_catalog_before_playing(self, server):
        load(server)
        assert [r.url.path for r in server.requests] == ["/collection", "/playing"]

    def test_integer_ids_are_normalized(self, server):
        server.json(
            "GET",
            "/collection",
            [{"id": 0, "name": "Drops", "kind": "Drops", "clips": [{"id": 0, "name": "x"}]}],
        )
        server.json("GET", "/playing", [[0, 0]])

        snapshot = load(server)
        assert snapshot.state_of(("0", "0")) == PlaybackState.STARTED

    def test_catalog_http_error_is_fatal(self, server):
        server.json("GET", "/collection", {"detail": "boom"}, status=500)
        with pytest.raises(CatalogUnavailable):
            load(server)

    def test_catalog_bad_payload_is_fatal(self, server):
        server.route("GET", "/collection", lambda req: httpx.Response(200, content=b"<html>"))
        with pytest.raises(CatalogUnavailable):
            load(server)

    def test_catalog_connection_error_is_fatal(self, server):
        def refuse(req):
            raise httpx.ConnectError("refused", request=req)

        server.route("GET", "/collection", refuse)
        with pytest.raises(CatalogUnavailable):
            load(server)

    @pytest.mark.parametrize("status", [404, 500, 503])
    def test_playing_error_degrades_to_empty(self, server, status):
        server.json("GET", "/playing", {"detail": "nope"}, status=status)

        snapshot = load(server)
        assert snapshot.playing == frozenset()
        assert set(snapshot.initial_states().values()) == {PlaybackState.STOPPED}

    def test_playing_bad_payload_degrades_to_empty(self, server):
        server.json("GET", "/playing", {"playing": "C1/A"})
        assert load(server).playing == frozenset()

    def test_playing_connection_error_degrades_to_empty(self, server):
        def refuse(req):
            raise httpx.ConnectError("refused", request=req)

        server.route("GET", "/playing", refuse)
        assert load(server).playing == frozenset()


class TestPublishPlaying:
    def test_reaches_mounted_clips_only(self, bus):
        received = []
        bus.register(("C1", "A"), received.append)

        delivered = publish_playing(bus, [("C1", "A"), ("C1", "B")])

        assert delivered == 1
        assert received == [ClipSignal(event="Started")]

    def test_failing_handler_does_not_stop_delivery(self, bus):
        received = []

        def broken(signal):
            raise RuntimeError("render failed")

        bus.register(("C1", "A"), broken)
        bus.register(("C1", "B"), received.append)

        delivered = publish_playing(bus, [("C1", "A"), ("C1", "B")])

        assert delivered == 1
        assert received == [ClipSignal(event="Started")]


class TestCatalogKinds:
    def test_unknown_kind_keeps_the_catalog(self, server):
        server.json(
            "GET",
            "/collection",
            [
                {"id": "0", "name": "Talk", "kind": "Podcasts", "clips": []},
                {"id": "1", "name": "Tavern", "kind": "BackgroundMusic", "clips": []},
            ],
        )

        catalog = load(server).catalog
        assert [c.display_kind for c in catalog.collections] == ["Podcasts", "Background Music"]
