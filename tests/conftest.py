from typing import Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from waybar_finance.constants import API_KEY_ENV

Handler = Union[dict, list, str, httpx.Response, Callable]


class FakeBus:
    """Records what the controller asked to spawn instead of spawning it."""

    def __init__(self):
        self.fetches: List[Tuple[str, Optional[str]]] = []
        self.searches: List[str] = []

    def fetch_symbol(self, symbol, api_key):
        self.fetches.append((symbol, api_key))

    def search(self, query):
        self.searches.append(query)


class Router:
    """httpx.MockTransport handler dispatching on the request path.

    Values may be JSON-able data, an httpx.Response, or a (sync or async)
    callable taking the request.
    """

    def __init__(self, routes: Dict[str, Handler]):
        self.routes = routes
        self.calls: List[httpx.Request] = []

    def hits(self, path: str) -> int:
        return sum(1 for r in self.calls if r.url.path == path)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = request.url.host if request.url.path in ("", "/") else request.url.path
        handler = self.routes.get(key)
        if handler is None:
            return httpx.Response(404, text="not found")
        if callable(handler):
            result = handler(request)
            if hasattr(result, "__await__"):
                result = await result
            return result
        if isinstance(handler, httpx.Response):
            return handler
        if isinstance(handler, str):
            return httpx.Response(200, text=handler)
        return httpx.Response(200, json=handler)


@pytest.fixture
def fake_bus():
    return FakeBus()


@pytest.fixture
def make_client():
    def _make(routes: Dict[str, Handler]):
        router = Router(routes)
        return httpx.AsyncClient(transport=httpx.MockTransport(router)), router
    return _make


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    monkeypatch.chdir(tmp_path)
