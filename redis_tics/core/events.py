"""Sinks that receive decoded monitor events.

The monitor stream pushes every decoded trace line to a sink as a named
event. Different implementations deliver to different destinations:

- NullSink: discards everything (tests, batch jobs)
- LoggingSink: logs each event
- QueueSink: hands events to an asyncio.Queue consumer, dropping when full
- ConsoleSink: prints one line per event with rich
- CompositeSink: fans out to several sinks

Delivery is best-effort: a failing sink never stops the stream.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import List, Optional, Protocol, Tuple, runtime_checkable

from rich.console import Console
from rich.markup import escape

from redis_tics.models.monitor import MonitorEvent

logger = logging.getLogger(__name__)

MONITOR_EVENT = "redis-monitor"


@runtime_checkable
class MonitorSink(Protocol):
    """Destination for decoded monitor events."""

    async def emit(self, event_name: str, event: MonitorEvent) -> None:
        """Deliver one event.

        Args:
            event_name: Event channel name, always ``"redis-monitor"`` for the stream
            event: The decoded trace line
        """
        ...


class NullSink:
    """Sink that discards all events."""

    async def emit(self, event_name: str, event: MonitorEvent) -> None:
        pass


class LoggingSink:
    """Sink that logs events. Useful for debugging."""

    def __init__(self, logger_name: str = __name__, level: int = logging.INFO):
        self._logger = logging.getLogger(logger_name)
        self._level = level

    async def emit(self, event_name: str, event: MonitorEvent) -> None:
        self._logger.log(
            self._level,
            f"[{event_name}] db={event.db} {event.client_ip}:{event.client_port} "
            f"{event.command} {' '.join(event.args)}",
        )


class QueueSink:
    """Sink that puts ``(event_name, event)`` pairs on an asyncio.Queue.

    When the queue is bounded and full the event is dropped.
    """

    def __init__(self, queue: Optional[asyncio.Queue] = None, maxsize: int = 0):
        self.queue: asyncio.Queue[Tuple[str, MonitorEvent]] = queue or asyncio.Queue(maxsize)
        self.dropped = 0

    async def emit(self, event_name: str, event: MonitorEvent) -> None:
        try:
            self.queue.put_nowait((event_name, event))
        except asyncio.QueueFull:
            self.dropped += 1
            logger.debug(f"Monitor queue full, dropped event ({self.dropped} so far)")


class ConsoleSink:
    """Sink that prints one formatted line per event to the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    async def emit(self, event_name: str, event: MonitorEvent) -> None:
        ts = datetime.fromtimestamp(event.timestamp / 1000).strftime("%H:%M:%S.%f")[:-3]
        args = " ".join(f'"{a}"' for a in event.args)
        self._console.print(
            f"[dim]{ts}[/dim] [cyan]\\[{event.db} {event.client_ip}:{event.client_port}][/cyan] "
            f"[bold]{escape(event.command)}[/bold] {escape(args)}",
            highlight=False,
        )


class CompositeSink:
    """Sink that forwards events to multiple child sinks."""

    def __init__(self, sinks: List[MonitorSink]):
        self._sinks = sinks

    async def emit(self, event_name: str, event: MonitorEvent) -> None:
        if not self._sinks:
            return

        results = await asyncio.gather(
            *[s.emit(event_name, event) for s in self._sinks],
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.warning(f"Monitor sink failed: {result}")
