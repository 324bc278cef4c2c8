import inspect
import os
import socket
import sys
from pathlib import Path
from typing import Callable, List, Tuple

import httpx
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from http_requester import Requester  # noqa: E402


def pytest_configure(config):
    # Register the asyncio marker so pytest doesn't warn when it's used.
    config.addinivalue_line(
        "markers", "asyncio: mark test to run in an asyncio event loop"
    )
    config.addinivalue_line("markers", "unit: mark test as a unit test")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep REQUESTER_* variables and .env files from leaking into tests."""
    for name in list(os.environ):
        if name.upper().startswith("REQUESTER_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


class StubResolver:
    """Resolver answering every hostname with one address."""

    def __init__(self, address: str = "127.0.0.1"):
        self.address = address
        self.calls: List[Tuple[str, int]] = []

    async def resolve(self, hostname: str, *, family: int = socket.AF_INET) -> str:
        self.calls.append((hostname, family))
        return self.address


class RecordingHandler:
    """httpx.MockTransport handler that records requests.

    ``respond`` builds the response for each request; it may also raise
    to simulate a transport failure.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.respond: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json={"ok": True})
        )

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.respond(request)
        if inspect.isawaitable(response):
            response = await response
        return response

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def resolver():
    return StubResolver()


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def agent_factory(handler):
    """Agent factory building httpx clients on a MockTransport."""
    created = []

    def factory(protocol, options, resolver):
        agent = httpx.AsyncClient(
            transport=httpx.MockTransport(handler), follow_redirects=False
        )
        created.append((protocol, agent))
        return agent

    factory.created = created
    return factory


@pytest.fixture
def make_requester(resolver, agent_factory):
    def make(config=None, **kwargs):
        kwargs.setdefault("resolver", resolver)
        kwargs.setdefault("agent_factory", agent_factory)
        return Requester(config, **kwargs)

    return make
