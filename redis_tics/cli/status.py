"""Status CLI commands: info, clients, slowlog, analytics, capabilities."""

from __future__ import annotations

from datetime import datetime
from typing import List

import click
from rich.console import Console
from rich.table import Table

from redis_tics.models.analysis import ServerCapabilities
from redis_tics.models.info import AdvancedAnalytics, ClientRecord, InfoSnapshot, SlowLogEntry

from .common import format_bytes, run_on_server


def _print_info(info: InfoSnapshot) -> None:
    console = Console()
    table = Table(title="Server Info")
    table.add_column("Field", no_wrap=True)
    table.add_column("Value")

    rows = [
        ("Version", info.server.redis_version),
        ("OS", info.server.os),
        ("Uptime (s)", str(info.server.uptime_in_seconds)),
        ("Connected clients", str(info.server.connected_clients)),
        ("Role", info.replication.role),
        ("Used memory", info.memory.used_memory_human or format_bytes(info.memory.used_memory)),
        ("Peak memory", info.memory.used_memory_peak_human),
        ("Fragmentation", f"{info.memory.mem_fragmentation_ratio:.2f}"),
        ("Ops/sec", str(info.stats.instantaneous_ops_per_sec)),
        ("Hits / misses", f"{info.stats.keyspace_hits} / {info.stats.keyspace_misses}"),
        ("Total keys", str(info.total_keys)),
    ]
    for name, value in rows:
        table.add_row(name, value or "-")
    console.print(table)

    if info.keyspace:
        ks = Table(title="Keyspace")
        ks.add_column("DB", no_wrap=True)
        ks.add_column("Keys", justify="right")
        ks.add_column("Expires", justify="right")
        ks.add_column("Avg TTL (ms)", justify="right")
        for db, entry in sorted(info.keyspace.items()):
            ks.add_row(db, str(entry.keys), str(entry.expires), str(entry.avg_ttl))
        console.print(ks)


def _print_clients(clients: List[ClientRecord]) -> None:
    if not clients:
        click.echo("No clients connected.")
        return

    console = Console()
    table = Table(title=f"Clients ({len(clients)})")
    table.add_column("ID", no_wrap=True)
    table.add_column("Address", no_wrap=True)
    table.add_column("Name")
    table.add_column("Age (s)", justify="right")
    table.add_column("Idle (s)", justify="right")
    table.add_column("DB", justify="right")
    table.add_column("Last cmd")
    for c in clients:
        table.add_row(c.id, c.addr, c.name or "-", str(c.age), str(c.idle), str(c.db), c.cmd)
    console.print(table)


def _print_slowlog(entries: List[SlowLogEntry]) -> None:
    if not entries:
        click.echo("Slow log is empty.")
        return

    console = Console()
    table = Table(title="Slow Log")
    table.add_column("ID", no_wrap=True)
    table.add_column("When", no_wrap=True)
    table.add_column("Duration (µs)", justify="right")
    table.add_column("Command")
    table.add_column("Client")
    for e in entries:
        when = datetime.fromtimestamp(e.timestamp).strftime("%Y-%m-%d %H:%M:%S")
        command = " ".join([e.command, *e.args])
        table.add_row(str(e.id), when, str(e.duration_us), command, e.client_addr or "-")
    console.print(table)


def _print_analytics(data: AdvancedAnalytics) -> None:
    console = Console()
    if data.memory_stats:
        m = data.memory_stats
        console.print(
            f"[bold]Memory[/bold] total={format_bytes(m.total_allocated)} "
            f"peak={format_bytes(m.peak_allocated)} dataset={m.dataset_percentage:.1f}% "
            f"fragmentation={m.fragmentation_ratio:.2f}"
        )
    if data.command_stats:
        table = Table(title="Top commands")
        table.add_column("Command", no_wrap=True)
        table.add_column("Calls", justify="right")
        table.add_column("µs/call", justify="right")
        for stat in sorted(data.command_stats, key=lambda s: s.calls, reverse=True)[:15]:
            table.add_row(stat.command, str(stat.calls), f"{stat.usec_per_call:.2f}")
        console.print(table)
    if data.cluster_info:
        console.print(
            f"[bold]Cluster[/bold] state={data.cluster_info.cluster_state} "
            f"nodes={data.cluster_info.cluster_known_nodes}"
        )
    if data.persistence:
        p = data.persistence
        console.print(
            f"[bold]Persistence[/bold] rdb={p.rdb_last_bgsave_status or '-'} "
            f"changes={p.rdb_changes_since_last_save} aof={'on' if p.aof_enabled else 'off'}"
        )
    if data.error_stats:
        errors = ", ".join(f"{e.error_type}={e.count}" for e in data.error_stats)
        console.print(f"[bold]Errors[/bold] {errors}")
    if data.latency_doctor:
        console.print("[bold]Latency doctor[/bold]")
        console.print(data.latency_doctor, highlight=False)


def _print_capabilities(caps: ServerCapabilities) -> None:
    console = Console()
    table = Table(title="Capabilities")
    table.add_column("Field", no_wrap=True)
    table.add_column("Value")
    for k, v in caps.model_dump().items():
        table.add_row(k, str(v))
    console.print(table)


@click.command()
@click.argument("server_id")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def info(server_id: str, as_json: bool):
    """Show INFO for a saved server."""
    run_on_server(server_id, lambda d: d.get_info(server_id), _print_info, as_json)


@click.command()
@click.argument("server_id")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def clients(server_id: str, as_json: bool):
    """List connected clients."""
    run_on_server(server_id, lambda d: d.get_clients(server_id), _print_clients, as_json)


@click.command()
@click.argument("server_id")
@click.option("--count", default=10, show_default=True, help="Entries to fetch")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def slowlog(server_id: str, count: int, as_json: bool):
    """Show the slow log."""
    run_on_server(
        server_id, lambda d: d.get_slow_log(server_id, count), _print_slowlog, as_json
    )


@click.command()
@click.argument("server_id")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def analytics(server_id: str, as_json: bool):
    """Collect memory, command, cluster, persistence and latency diagnostics."""
    run_on_server(
        server_id, lambda d: d.get_advanced_analytics(server_id), _print_analytics, as_json
    )


@click.command()
@click.argument("server_id")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def capabilities(server_id: str, as_json: bool):
    """Probe edition, cluster mode and supported command families."""
    run_on_server(
        server_id, lambda d: d.get_server_capabilities(server_id), _print_capabilities, as_json
    )
