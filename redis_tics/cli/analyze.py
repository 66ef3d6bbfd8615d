"""Analysis CLI commands: keyspace sampling and client list heuristics."""

from __future__ import annotations

from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from redis_tics.models.analysis import ClientAnalysisReport, DatabaseAnalysisReport

from .common import format_bytes, run_on_server


@click.group()
def analyze():
    """Analyse keyspace and client connections"""
    pass


def _print_database(report: DatabaseAnalysisReport) -> None:
    console = Console()
    console.print(
        f"[bold]Sampled {report.total_keys} keys[/bold] "
        f"using {format_bytes(report.total_memory)}"
    )

    types = Table(title="Types")
    types.add_column("Type", no_wrap=True)
    types.add_column("Keys", justify="right")
    types.add_column("% keys", justify="right")
    memory = {m.key_type: m for m in report.memory_by_type}
    types.add_column("Memory", justify="right")
    types.add_column("% memory", justify="right")
    for t in report.type_distribution:
        m = memory.get(t.key_type)
        types.add_row(
            t.key_type,
            str(t.count),
            f"{t.percentage:.1f}",
            format_bytes(m.memory_bytes) if m else "-",
            f"{m.percentage:.1f}" if m else "-",
        )
    console.print(types)

    e = report.expiry_analysis
    console.print(
        f"[bold]TTL[/bold] with={e.keys_with_ttl} without={e.keys_without_ttl} "
        f"1h={e.expiring_in_1h} 24h={e.expiring_in_24h} 7d={e.expiring_in_7d}"
    )

    if report.namespaces:
        ns = Table(title="Namespaces")
        ns.add_column("Namespace")
        ns.add_column("Keys", justify="right")
        ns.add_column("Memory", justify="right")
        for info in report.namespaces:
            ns.add_row(info.namespace, str(info.key_count), format_bytes(info.memory_bytes))
        console.print(ns)

    if report.top_keys_by_memory:
        top = Table(title="Largest keys")
        top.add_column("Key")
        top.add_column("Type", no_wrap=True)
        top.add_column("Memory", justify="right")
        top.add_column("TTL", justify="right")
        for k in report.top_keys_by_memory:
            top.add_row(k.key, k.key_type, format_bytes(k.memory_bytes), str(k.ttl))
        console.print(top)

    for rec in report.recommendations:
        console.print(f"💡 {rec}", highlight=False)


def _print_clients(report: ClientAnalysisReport) -> None:
    console = Console()
    console.print(
        f"[bold]{report.total_clients} clients[/bold], "
        f"{len(report.idle_clients)} idle, {len(report.high_memory_clients)} with large buffers"
    )

    if report.clients_by_command:
        table = Table(title="Clients by last command")
        table.add_column("Command", no_wrap=True)
        table.add_column("Clients", justify="right")
        table.add_column("IPs")
        for group in report.clients_by_command:
            ips = ", ".join(group.client_ips)
            table.add_row(group.command or "-", str(group.client_count), ips)
        console.print(table)

    for p in report.suspicious_patterns:
        console.print(
            f"[yellow]⚠️  {p.pattern_type}[/yellow]: {p.description}", highlight=False
        )
        console.print(f"   {p.recommendation}", highlight=False)

    for a in report.anomalies:
        console.print(f"[yellow]{a.anomaly_type}[/yellow] {a.client_addr}: {a.details}")


@analyze.command("database")
@click.argument("server_id")
@click.option("--sample-size", type=int, default=None, help="Keys to sample")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def analyze_database(server_id: str, sample_size: Optional[int], as_json: bool):
    """Sample the keyspace and summarise types, TTLs and namespaces."""
    run_on_server(
        server_id,
        lambda d: d.analyze_database(server_id, sample_size),
        _print_database,
        as_json,
    )


@analyze.command("clients")
@click.argument("server_id")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def analyze_clients(server_id: str, as_json: bool):
    """Flag idle clients, large buffers and suspicious connection patterns."""
    run_on_server(server_id, lambda d: d.analyze_clients(server_id), _print_clients, as_json)
