"""
Shared fixtures: a fake transport, stub providers, a controllable clock and
an in-memory response cache. Nothing here touches the network.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple, Union

import pytest

from netknife.core.cache import MemoryCacheBackend, ResponseCache
from netknife.core.transport import Transport, TransportResponse
from netknife.integrations.providers import ProviderClient
from netknife.models.intel import SubjectKind

Canned = Union[TransportResponse, Exception]
Route = Tuple[str, Dict[str, str], Canned]


class FakeTransport(Transport):
    """Serves canned responses by URL prefix (and optional query params)
    and records every call."""

    def __init__(self):
        self.routes: List[Route] = []
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def add(self, url_prefix: str, body: Any = None, status: int = 200,
            headers: Optional[Dict[str, str]] = None,
            params: Optional[Dict[str, str]] = None) -> None:
        text = body if isinstance(body, str) else json.dumps(body)
        self.routes.append((url_prefix, params or {}, TransportResponse(status, text, headers or {})))

    def fail(self, url_prefix: str, error: Exception,
             params: Optional[Dict[str, str]] = None) -> None:
        self.routes.append((url_prefix, params or {}, error))

    async def call(self, url, method="GET", body=None, timeout=10.0, headers=None, params=None):
        self.calls.append({
            "url": url,
            "method": method,
            "body": body,
            "timeout": timeout,
            "headers": dict(headers or {}),
            "params": dict(params or {}),
        })
        sent = dict(params or {})
        for prefix, wanted, canned in self.routes:
            if url.startswith(prefix) and all(sent.get(k) == v for k, v in wanted.items()):
                if isinstance(canned, Exception):
                    raise canned
                return canned
        return TransportResponse(404, json.dumps({"error": "no canned response"}))

    async def close(self):
        self.closed = True


class StubProvider(ProviderClient):
    """Provider with a fixed payload, optional delay and optional failure."""

    display_name = "Stub"
    supported_kinds = frozenset(SubjectKind)

    def __init__(self, provider_id: str, payload: Optional[Dict[str, Any]] = None,
                 delay: float = 0.0, error: Optional[Exception] = None,
                 kinds: Optional[frozenset] = None, **kwargs: Any):
        self.provider_id = provider_id
        self.display_name = provider_id
        if kinds is not None:
            self.supported_kinds = kinds
        super().__init__(FakeTransport(), **kwargs)
        self.payload = payload or {}
        self.delay = delay
        self.error = error
        self.fetch_count = 0

    async def fetch(self, subject, timeout):
        self.fetch_count += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payload

    def normalize(self, raw, subject):
        return dict(raw)


class MutableClock:
    """Clock whose time only moves when a test says so."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def clock():
    return MutableClock()


@pytest.fixture
def memory_cache(clock):
    return ResponseCache(backend=MemoryCacheBackend(max_entries=100), clock=clock)


@pytest.fixture
def stub_provider_factory():
    return StubProvider
