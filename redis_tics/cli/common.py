"""Helpers shared by the CLI commands."""

from __future__ import annotations

import asyncio
import json as _json
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

import click
from pydantic import BaseModel

from redis_tics.core.errors import RedisTicsError
from redis_tics.core.registry import ConnectionRegistry
from redis_tics.core.servers import ServerProfile, ServerStore
from redis_tics.diagnostics.dispatcher import CommandDispatcher


def load_profile(server_id: str, store: Optional[ServerStore] = None) -> ServerProfile:
    profile = (store or ServerStore()).get(server_id)
    if profile is None:
        raise click.ClickException(f"Unknown server id: {server_id}")
    return profile


@asynccontextmanager
async def connected(server_id: str) -> AsyncIterator[CommandDispatcher]:
    """Connect to a stored server for the duration of one CLI command."""
    profile = load_profile(server_id)
    registry = ConnectionRegistry()
    await registry.connect(profile)
    try:
        yield CommandDispatcher(registry)
    finally:
        await registry.close_all()


def fail(message: Any, as_json: bool = False) -> None:
    if as_json:
        print(_json.dumps({"error": str(message)}))
    else:
        click.echo(f"❌ Error: {message}")
    sys.exit(1)


def print_json(value: Any) -> None:
    if isinstance(value, BaseModel):
        print(value.model_dump_json(indent=2))
    elif isinstance(value, list):
        print(
            _json.dumps(
                [v.model_dump(mode="json") if isinstance(v, BaseModel) else v for v in value],
                indent=2,
            )
        )
    else:
        print(_json.dumps(value, indent=2, default=str))


def run_on_server(
    server_id: str,
    operation: Callable[[CommandDispatcher], Awaitable[Any]],
    render: Callable[[Any], None],
    as_json: bool = False,
) -> None:
    """Connect, run one dispatcher operation, print the result, disconnect.

    Any redis-tics error is printed as ``❌ Error: ...`` and exits with status 1.
    """

    async def _run():
        async with connected(server_id) as dispatcher:
            return await operation(dispatcher)

    try:
        result = asyncio.run(_run())
    except (RedisTicsError, click.ClickException) as e:
        fail(e, as_json)
        return

    if as_json:
        print_json(result)
    else:
        render(result)


def format_bytes(num: int) -> str:
    size = float(num)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(size) < 1024:
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{size:.1f} TB"
