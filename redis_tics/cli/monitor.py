"""Live MONITOR command."""

from __future__ import annotations

import asyncio
from typing import Optional

import click

from redis_tics.core.errors import RedisTicsError
from redis_tics.core.events import ConsoleSink
from redis_tics.core.registry import ConnectionRegistry
from redis_tics.diagnostics.monitor import MonitorManager

from .common import fail, load_profile


async def _stream(server_id: str, duration: Optional[float]) -> int:
    profile = load_profile(server_id)
    async with ConnectionRegistry() as registry:
        await registry.connect(profile)
        manager = MonitorManager(registry, sink=ConsoleSink())
        stream = await manager.start_monitor(server_id)
        try:
            if duration:
                await asyncio.sleep(duration)
            else:
                await stream.wait()
        finally:
            await manager.stop_monitor(server_id)
        return stream.events_emitted


@click.command()
@click.argument("server_id")
@click.option("--duration", type=float, default=None, help="Stop after N seconds")
def monitor(server_id: str, duration: Optional[float]):
    """Stream commands executed on the server until Ctrl+C."""
    click.echo(f"📡 Monitoring {server_id} (Ctrl+C to stop)")
    try:
        count = asyncio.run(_stream(server_id, duration))
    except KeyboardInterrupt:
        click.echo("\n⏹️  Monitor stopped")
        return
    except (RedisTicsError, click.ClickException) as e:
        fail(e)
        return
    click.echo(f"⏹️  Monitor stopped after {count} events")
