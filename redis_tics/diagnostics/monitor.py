"""Live MONITOR stream.

Each connected server can have one background stream. The stream opens its
own connection (MONITOR takes a connection over exclusively), decodes every
trace line and pushes the result to a sink. It stops when the session's stop
flag is set; the flag is polled once per read, so stopping takes at most one
``monitor_read_timeout``.
"""

import asyncio
import logging
from typing import Optional

from redis.exceptions import RedisError

from redis_tics.core.config import settings
from redis_tics.core.errors import DecodeError, NotConnectedError
from redis_tics.core.events import MONITOR_EVENT, MonitorSink, NullSink
from redis_tics.core.registry import ClientFactory, ConnectionRegistry
from redis_tics.core.servers import mask_redis_url
from redis_tics.models.monitor import MonitorState
from redis_tics.parsers.monitor import parse_monitor_line

logger = logging.getLogger(__name__)


class MonitorStream:
    """One background trace reader for a server.

    ``stop_flag`` is shared with the owning session, so disconnecting the
    session stops the stream as well.
    """

    def __init__(
        self,
        server_id: str,
        url: str,
        stop_flag: asyncio.Event,
        sink: MonitorSink,
        client_factory: ClientFactory,
    ):
        self.server_id = server_id
        self.state = MonitorState.idle
        self.events_emitted = 0
        self.lines_dropped = 0
        self._url = url
        self._stop = stop_flag
        self._sink = sink
        self._client_factory = client_factory
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            raise RuntimeError(f"Monitor for {self.server_id} is already running")
        self._stop.clear()
        self.state = MonitorState.starting
        self._task = asyncio.create_task(self._run(), name=f"monitor:{self.server_id}")

    async def stop(self) -> None:
        """Set the stop flag and wait for the task to exit."""
        self._stop.set()
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
        self.state = MonitorState.stopped

    async def wait(self) -> None:
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def _run(self) -> None:
        try:
            client = self._client_factory(self._url)
        except ValueError as e:
            logger.warning(f"Monitor for {self.server_id} could not start: {e}")
            self.state = MonitorState.stopped
            return

        try:
            async with client.monitor() as monitor:
                self.state = MonitorState.streaming
                logger.info(f"Monitor streaming from {mask_redis_url(self._url)}")
                await self._read_loop(monitor.connection)
        except (RedisError, OSError) as e:
            logger.warning(f"Monitor for {self.server_id} could not start: {e}")
        finally:
            self.state = MonitorState.stopped
            try:
                await client.aclose()
            except (RedisError, OSError) as e:
                logger.debug(f"Error closing monitor connection for {self.server_id}: {e}")
            logger.info(f"Monitor for {self.server_id} stopped")

    async def _read_loop(self, connection) -> None:
        while not self._stop.is_set():
            try:
                line = await connection.read_response(timeout=settings.monitor_read_timeout)
            except (RedisError, OSError) as e:
                logger.debug(f"Monitor read failed for {self.server_id}: {e}")
                await asyncio.sleep(settings.monitor_retry_delay)
                continue

            if line is None:
                continue
            await self._handle_line(line)

    async def _handle_line(self, line) -> None:
        try:
            event = parse_monitor_line(line)
        except DecodeError as e:
            self.lines_dropped += 1
            logger.debug(f"Dropped monitor line: {e.line[:120]!r}")
            return

        try:
            await self._sink.emit(MONITOR_EVENT, event)
            self.events_emitted += 1
        except Exception as e:
            logger.warning(f"Monitor sink failed for {self.server_id}: {e}")


class MonitorManager:
    """Starts and stops monitor streams for sessions in a registry."""

    def __init__(self, registry: ConnectionRegistry, sink: Optional[MonitorSink] = None):
        self._registry = registry
        self._sink = sink or NullSink()

    async def start_monitor(
        self, server_id: str, sink: Optional[MonitorSink] = None
    ) -> MonitorStream:
        """Start streaming for ``server_id``, stopping any stream already running for it.

        Raises:
            NotConnectedError: if the server has no live session
        """
        session = await self._registry.get_session(server_id)
        async with session.lock:
            if session.monitor is not None:
                await session.monitor.stop()
            stream = MonitorStream(
                server_id=server_id,
                url=session.profile.trace_url(),
                stop_flag=session.monitor_stop,
                sink=sink or self._sink,
                client_factory=self._registry.client_factory,
            )
            session.monitor = stream
            stream.start()
        logger.info(f"Started monitor for {server_id}")
        return stream

    async def stop_monitor(self, server_id: str) -> None:
        """Stop the stream for ``server_id``. Unknown or idle servers are ignored."""
        try:
            session = await self._registry.get_session(server_id)
        except NotConnectedError:
            return
        session.monitor_stop.set()
        if session.monitor is not None:
            await session.monitor.stop()

    async def get_state(self, server_id: str) -> MonitorState:
        try:
            session = await self._registry.get_session(server_id)
        except NotConnectedError:
            return MonitorState.idle
        return session.monitor.state if session.monitor is not None else MonitorState.idle
