"""Key browser, ad-hoc command and impact CLI commands."""

from __future__ import annotations

import shlex
from typing import Tuple

import click
from rich.console import Console
from rich.table import Table

from redis_tics.models.analysis import PerformanceWarning, RiskLevel
from redis_tics.models.keys import CommandResult, KeyScanResult

from .common import fail, format_bytes, run_on_server

_LEVEL_STYLE = {
    RiskLevel.info: "green",
    RiskLevel.warning: "yellow",
    RiskLevel.critical: "bold red",
}


def _print_scan(result: KeyScanResult) -> None:
    console = Console()
    table = Table(title=f"Keys (cursor {result.cursor})")
    table.add_column("Key")
    table.add_column("Type", no_wrap=True)
    table.add_column("TTL", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Encoding")
    for record in result.keys:
        ttl = "none" if record.ttl < 0 else str(record.ttl)
        size = format_bytes(record.size) if record.size is not None else "-"
        table.add_row(record.key, record.key_type, ttl, size, record.encoding or "-")
    console.print(table)
    if result.has_more:
        click.echo(f"More keys available; continue with --cursor {result.cursor}")


def _print_command_result(result: CommandResult) -> None:
    if result.success:
        click.echo(result.result)
    else:
        click.echo(f"(error) {result.error}")
    click.echo(f"({result.execution_time_ms} ms)")


def _print_impact(warning: PerformanceWarning) -> None:
    console = Console()
    style = _LEVEL_STYLE.get(warning.level, "white")
    console.print(f"[{style}]{warning.level.value.upper()}[/{style}] {warning.command}")
    console.print(warning.message, highlight=False)
    console.print(f"[dim]{warning.estimated_impact}[/dim]")


@click.command()
@click.argument("server_id")
@click.option("--pattern", default="*", show_default=True, help="SCAN MATCH pattern")
@click.option("--cursor", default="0", show_default=True, help="Cursor from a previous page")
@click.option("--count", default=100, show_default=True, help="SCAN COUNT hint")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def keys(server_id: str, pattern: str, cursor: str, count: int, as_json: bool):
    """Browse one SCAN page of keys."""
    run_on_server(
        server_id,
        lambda d: d.scan_keys(server_id, pattern=pattern, cursor=cursor, count=count),
        _print_scan,
        as_json,
    )


@click.command("exec")
@click.argument("server_id")
@click.argument("command_line", nargs=-1, required=True)
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def exec_command(server_id: str, command_line: Tuple[str, ...], as_json: bool):
    """Run one command, e.g. `redis-tics exec ID -- GET foo`."""
    if not any(arg.strip() for arg in command_line):
        fail("Empty command", as_json)
        return
    line = shlex.join(command_line)
    run_on_server(
        server_id, lambda d: d.execute_command(server_id, line), _print_command_result, as_json
    )


@click.command()
@click.argument("server_id")
@click.argument("operation")
@click.argument("pattern", required=False, default="")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def impact(server_id: str, operation: str, pattern: str, as_json: bool):
    """Estimate the performance impact of OPERATION on this server."""
    run_on_server(
        server_id,
        lambda d: d.check_operation_impact(server_id, operation, pattern),
        _print_impact,
        as_json,
    )
