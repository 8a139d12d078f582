"""
Shared fixtures for the soundboard test suite.
"""

import json
from typing import Callable, Dict, List, Tuple

import httpx
import pytest

from soundboard.sync.bus import KeyedBus

BASE_URL = "http://soundboard.test"

CATALOG = [
    {
        "id": "C1",
        "name": "Effects",
        "kind": "Fx",
        "clips": [{"id": "A", "name": "door.wav"}, {"id": "B", "name": "thunder.wav"}],
    }
]


class FakeGateway:
    """Records commands instead of sending them."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, tuple]] = []

    def play(self, coll_id, clip_id) -> None:
        self.calls.append(("play", (coll_id, clip_id)))

    def stop(self, coll_id, clip_id) -> None:
        self.calls.append(("stop", (coll_id, clip_id)))


class FakeServer:
    """
    Minimal soundboard server behind httpx.MockTransport.

    `routes` maps "METHOD /path" to a callable returning an httpx.Response;
    every request is recorded in `requests`.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def route(self, method: str, path: str, responder) -> None:
        self.routes[f"{method} {path}"] = responder

    def json(self, method: str, path: str, payload, status: int = 200) -> None:
        self.route(method, path, lambda req: httpx.Response(status, json=payload))

    def sse(self, path: str, body: str) -> None:
        self.route(
            "GET",
            path,
            lambda req: httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=body.encode("utf-8"),
            ),
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responder = self.routes.get(f"{request.method} {request.url.path}")
        if responder is None:
            if request.method == "POST":
                return httpx.Response(200, json={"ok": True})
            return httpx.Response(404)
        return responder(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            base_url=BASE_URL,
            timeout=5.0,
        )

    def posted(self) -> List[Tuple[str, object]]:
        out = []
        for req in self.requests:
            if req.method != "POST":
                continue
            body = json.loads(req.content) if req.content else None
            out.append((req.url.path, body))
        return out


@pytest.fixture
def bus():
    return KeyedBus()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def server():
    s = FakeServer()
    s.json("GET", "/collection", CATALOG)
    s.json("GET", "/playing", [["C1", "A"]])
    s.sse("/events", "")
    return s
