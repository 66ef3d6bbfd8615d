"""Registry of live server sessions.

One ``Session`` per server id owns the primary connection and the stop flag
shared with that server's monitor stream. The id -> session map is guarded by
a reader/writer lock: lookups for request/response calls share it, connect and
disconnect take it exclusively. A per-session lock keeps one command in flight
on a session's connection at a time.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    TypeVar,
)

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .config import settings
from .errors import NotConnectedError, ServerConnectionError
from .servers import ServerProfile, mask_redis_url

if TYPE_CHECKING:
    from redis_tics.diagnostics.monitor import MonitorStream

logger = logging.getLogger(__name__)

T = TypeVar("T")
ClientFactory = Callable[[str], Redis]


def create_client(url: str) -> Redis:
    """Create a client bound to one physical connection.

    Response callbacks are cleared so callers receive the raw reply (INFO as
    text, CLIENT LIST as text, SCAN as ``[cursor, keys]``) and the parsers in
    ``redis_tics.parsers`` do all interpretation.
    """
    client = Redis.from_url(
        url,
        decode_responses=True,
        encoding_errors="replace",
        single_connection_client=True,
        socket_timeout=settings.socket_timeout,
        socket_connect_timeout=settings.socket_connect_timeout,
        protocol=settings.protocol,
    )
    client.response_callbacks.clear()
    return client


class _ReadWriteLock:
    """Allow concurrent readers while preserving single-writer semantics."""

    def __init__(self) -> None:
        self._condition = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writer_waiters = 0

    @asynccontextmanager
    async def read_lock(self) -> AsyncIterator[None]:
        async with self._condition:
            while self._writer or self._writer_waiters > 0:
                await self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            async with self._condition:
                self._readers = max(0, self._readers - 1)
                if self._readers == 0:
                    self._condition.notify_all()

    @asynccontextmanager
    async def write_lock(self) -> AsyncIterator[None]:
        async with self._condition:
            self._writer_waiters += 1
            try:
                while self._writer or self._readers > 0:
                    await self._condition.wait()
            finally:
                self._writer_waiters = max(0, self._writer_waiters - 1)
            self._writer = True
        try:
            yield
        finally:
            async with self._condition:
                self._writer = False
                self._condition.notify_all()


@dataclass
class Session:
    """A live connection bound to a server profile."""

    profile: ServerProfile
    client: Redis
    monitor_stop: asyncio.Event = field(default_factory=asyncio.Event)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    monitor: Optional[MonitorStream] = None

    async def close(self) -> None:
        """Signal the monitor stream, wait for it to exit, then drop the connection."""
        self.monitor_stop.set()
        if self.monitor is not None:
            await self.monitor.stop()
        try:
            await self.client.aclose()
        except (RedisError, OSError) as e:
            logger.debug(f"Error closing connection for {self.profile.id}: {e}")


class ConnectionRegistry:
    """Owns every live session, keyed by server id."""

    def __init__(self, client_factory: Optional[ClientFactory] = None):
        self.client_factory: ClientFactory = client_factory or create_client
        self._sessions: Dict[str, Session] = {}
        self._lock = _ReadWriteLock()

    async def open_client(self, url: str) -> Redis:
        """Open and verify a connection to ``url``.

        Raises:
            ServerConnectionError: on DNS, authentication or handshake failure
        """
        try:
            client = self.client_factory(url)
        except ValueError as e:
            raise ServerConnectionError(f"Failed to create client: {e}") from e

        try:
            await client.ping()
        except (RedisError, OSError) as e:
            try:
                await client.aclose()
            except (RedisError, OSError) as close_error:
                logger.debug(f"Error closing failed client: {close_error}")
            raise ServerConnectionError(f"Failed to connect: {e}") from e
        return client

    async def connect(self, profile: ServerProfile) -> None:
        """Open a session for ``profile``, replacing any existing one for its id."""
        url = profile.connection_url()
        client = await self.open_client(url)
        session = Session(profile=profile, client=client)

        async with self._lock.write_lock():
            previous = self._sessions.get(profile.id)
            self._sessions[profile.id] = session

        if previous is not None:
            logger.info(f"Replacing existing session for {profile.id}")
            await previous.close()
        logger.info(f"Connected to {profile.id} at {mask_redis_url(url)}")

    async def disconnect(self, server_id: str) -> None:
        """Remove and close the session for ``server_id``. A missing session is not an error."""
        async with self._lock.write_lock():
            session = self._sessions.pop(server_id, None)

        if session is None:
            return
        await session.close()
        logger.info(f"Disconnected from {server_id}")

    async def close_all(self) -> None:
        async with self._lock.write_lock():
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            await session.close()

    async def get_session(self, server_id: str) -> Session:
        async with self._lock.read_lock():
            session = self._sessions.get(server_id)
        if session is None:
            raise NotConnectedError(server_id)
        return session

    @asynccontextmanager
    async def session(self, server_id: str) -> AsyncIterator[Session]:
        """Hold a session for the duration of one round trip.

        Raises:
            NotConnectedError: if ``server_id`` has no live session
        """
        async with self._lock.read_lock():
            session = self._sessions.get(server_id)
            if session is None:
                raise NotConnectedError(server_id)
            async with session.lock:
                yield session

    async def with_session(self, server_id: str, fn: Callable[[Session], Awaitable[T]]) -> T:
        async with self.session(server_id) as session:
            return await fn(session)

    async def is_connected(self, server_id: str) -> bool:
        async with self._lock.read_lock():
            return server_id in self._sessions

    async def connected_ids(self) -> List[str]:
        async with self._lock.read_lock():
            return list(self._sessions)

    async def __aenter__(self) -> "ConnectionRegistry":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close_all()
