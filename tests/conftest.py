"""
Test configuration and fixtures for redis-tics.

No test talks to a real server: ``FakeRedis`` answers ``execute_command`` from
a reply table and serves scripted MONITOR lines.
"""

import asyncio
import base64
import os
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
from pydantic import SecretStr
from redis.exceptions import ResponseError

from redis_tics.core.config import settings
from redis_tics.core.registry import ConnectionRegistry
from redis_tics.core.servers import ServerProfile
from redis_tics.diagnostics.dispatcher import CommandDispatcher

SERVER_ID = "srv-test"


class FakeMonitorConnection:
    """Serves scripted trace lines; returns None (a read timeout) once they run out."""

    def __init__(self, lines: List[Any]):
        self.lines = list(lines)
        self.reads = 0

    async def read_response(self, timeout: Optional[float] = None):
        self.reads += 1
        await asyncio.sleep(0.005)
        if not self.lines:
            return None
        line = self.lines.pop(0)
        if isinstance(line, BaseException):
            raise line
        return line


class FakeMonitor:
    def __init__(self, client: "FakeRedis"):
        self._client = client
        self.connection = FakeMonitorConnection(client.monitor_lines)

    async def __aenter__(self):
        if self._client.monitor_error is not None:
            raise self._client.monitor_error
        self._client.monitors_opened += 1
        return self

    async def __aexit__(self, *exc):
        self._client.monitors_closed += 1


class FakeRedis:
    """Minimal stand-in for ``redis.asyncio.Redis``.

    ``replies`` maps an argument tuple (stringified) to a reply. The longest
    matching prefix wins, so ``("INFO",)`` answers every INFO section unless a
    more specific entry exists. A reply may be a value, an exception instance
    (raised) or a callable (called with the stringified arguments).
    """

    def __init__(
        self,
        replies: Optional[Dict[Tuple[str, ...], Any]] = None,
        monitor_lines: Optional[List[Any]] = None,
        ping_error: Optional[Exception] = None,
        monitor_error: Optional[Exception] = None,
    ):
        self.replies: Dict[Tuple[str, ...], Any] = dict(replies or {})
        self.monitor_lines = list(monitor_lines or [])
        self.ping_error = ping_error
        self.monitor_error = monitor_error
        self.calls: List[Tuple[str, ...]] = []
        self.closed = False
        self.monitors_opened = 0
        self.monitors_closed = 0

    async def ping(self):
        if self.ping_error is not None:
            raise self.ping_error
        return True

    async def aclose(self):
        self.closed = True

    def monitor(self) -> FakeMonitor:
        return FakeMonitor(self)

    async def execute_command(self, *args):
        key = tuple(str(a) for a in args)
        self.calls.append(key)
        for size in range(len(key), 0, -1):
            if key[:size] in self.replies:
                reply = self.replies[key[:size]]
                break
        else:
            raise ResponseError(f"ERR unknown command '{key[0] if key else ''}'")

        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(*key)
        return reply

    def called(self, *prefix: str) -> List[Tuple[str, ...]]:
        return [c for c in self.calls if c[: len(prefix)] == prefix]


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the config dir at a temp directory and use a throwaway master key."""
    key = base64.b64encode(os.urandom(32)).decode()
    monkeypatch.setattr(settings, "config_dir", tmp_path / "config")
    monkeypatch.setattr(settings, "master_key", SecretStr(key))
    monkeypatch.setattr(settings, "monitor_read_timeout", 0.01)
    monkeypatch.setattr(settings, "monitor_retry_delay", 0.001)
    yield settings


@pytest.fixture
def profile() -> ServerProfile:
    return ServerProfile(id=SERVER_ID, name="test", host="localhost", port=6379)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def connect(profile) -> Callable:
    """Return a coroutine that connects a registry to ``fake`` and yields a dispatcher."""

    async def _connect(fake: FakeRedis, server_profile: Optional[ServerProfile] = None):
        registry = ConnectionRegistry(client_factory=lambda url: fake)
        await registry.connect(server_profile or profile)
        return registry, CommandDispatcher(registry)

    return _connect
