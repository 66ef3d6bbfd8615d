"""Server CLI commands for managing the saved server list.

Provides a Click command group `server` with sub-commands to list, add, show
and remove stored server profiles.
"""

from __future__ import annotations

import json as _json
from typing import Any, Dict, List, Optional

import click
from pydantic import SecretStr
from rich.console import Console
from rich.table import Table

from redis_tics.core.errors import RedisTicsError
from redis_tics.core.servers import ServerProfile, ServerStore

from .common import fail


@click.group()
def server():
    """Manage saved servers"""
    pass


def _masked(profile: ServerProfile) -> Dict[str, Any]:
    d = profile.model_dump(mode="json", exclude={"password"})
    d["password"] = "***" if profile.password else None
    d["url"] = profile.masked_url()
    return d


def _print_servers_table(items: List[ServerProfile]):
    if not items:
        click.echo("No servers saved.")
        return

    console = Console()
    table = Table(title="Saved Servers", show_lines=False)
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("URL (masked)")
    table.add_column("TLS", no_wrap=True)

    for profile in items:
        tls = "yes" if profile.tls else "no"
        table.add_row(profile.id, profile.name, profile.masked_url(), tls)

    console.print(table)


@server.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def servers_list(as_json: bool):
    """List saved servers."""
    try:
        items = ServerStore().load()
    except (RedisTicsError, OSError, ValueError) as e:
        fail(e, as_json)
        return

    if as_json:
        print(_json.dumps([_masked(p) for p in items], indent=2))
        return
    _print_servers_table(items)


@server.command("add")
@click.option("--name", required=True, help="Display name")
@click.option("--host", default="localhost", show_default=True)
@click.option("--port", default=6379, show_default=True, type=int)
@click.option("--username", default=None, help="ACL username")
@click.option("--password", default=None, help="Password (stored encrypted)")
@click.option("--db", default=None, type=int, help="Logical database index")
@click.option("--tls", is_flag=True, help="Connect with TLS (rediss://)")
@click.option("--id", "server_id", default=None, help="Explicit id (default: generated)")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def servers_add(
    name: str,
    host: str,
    port: int,
    username: Optional[str],
    password: Optional[str],
    db: Optional[int],
    tls: bool,
    server_id: Optional[str],
    as_json: bool,
):
    """Save a new server (or replace one with the same id)."""
    fields: Dict[str, Any] = dict(
        name=name,
        host=host,
        port=port,
        username=username,
        password=SecretStr(password) if password else None,
        db=db,
        tls=tls,
    )
    if server_id:
        fields["id"] = server_id
    profile = ServerProfile(**fields)

    try:
        ServerStore().upsert(profile)
    except (RedisTicsError, OSError) as e:
        fail(e, as_json)
        return

    if as_json:
        print(_json.dumps({"id": profile.id, "status": "saved"}))
    else:
        click.echo(f"✅ Saved server {profile.id} ({profile.masked_url()})")


@server.command("show")
@click.argument("server_id")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def servers_show(server_id: str, as_json: bool):
    """Show one saved server."""
    try:
        profile = ServerStore().get(server_id)
    except (RedisTicsError, OSError, ValueError) as e:
        fail(e, as_json)
        return
    if profile is None:
        fail(f"Server not found: {server_id}", as_json)
        return

    d = _masked(profile)
    if as_json:
        print(_json.dumps(d, indent=2))
        return

    console = Console()
    table = Table(title=f"Server {server_id}")
    table.add_column("Field", no_wrap=True)
    table.add_column("Value")
    for k, v in d.items():
        table.add_row(k, "-" if v is None else str(v))
    console.print(table)


@server.command("remove")
@click.argument("server_id")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def servers_remove(server_id: str, as_json: bool):
    """Remove a saved server."""
    try:
        removed = ServerStore().remove(server_id)
    except (RedisTicsError, OSError, ValueError) as e:
        fail(e, as_json)
        return
    if not removed:
        fail(f"Server not found: {server_id}", as_json)
        return

    if as_json:
        print(_json.dumps({"id": server_id, "status": "removed"}))
    else:
        click.echo(f"🗑️  Removed server {server_id}")
