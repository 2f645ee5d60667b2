from __future__ import annotations

from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from txnload.drivers.abstract import DriverResult


def _fmt_mb(value: Optional[int]) -> str:
    if not value:
        return "N/A"
    return f"{value / (1024 * 1024):.2f}"


def print_result(result: DriverResult, console: Optional[Console] = None) -> None:
    """
    Render a finished workload run as a rich table.

    A failed batch or an exhausted retry budget is shown under the table.
    """
    console = console or Console()

    table = Table(title="txnload run summary", box=box.ROUNDED)
    table.add_column("Mode", style="cyan", no_wrap=True)
    table.add_column("Committed", justify="right", style="magenta")
    table.add_column("Attempts", justify="right", style="blue")
    table.add_column("Failures", justify="right", style="red")
    table.add_column("Stmt errors", justify="right", style="red")
    table.add_column("Duration (s)", justify="right", style="green")
    table.add_column("Throughput (rows/s)", justify="right", style="bold green")
    table.add_column("Peak Memory (MB)", justify="right", style="yellow")
    table.add_column("CPU %", justify="right", style="red")

    cpu = result.get("cpu_percent")
    table.add_row(
        result.get("mode", "unknown"),
        f"{result.get('committed', 0):,}",
        f"{result.get('attempts', 0):,}",
        f"{result.get('failures', 0):,}",
        f"{result.get('statement_errors', 0):,}",
        f"{result.get('duration_seconds', 0.0):.1f}",
        f"{result.get('throughput_rows_per_sec', 0.0):,.2f}",
        _fmt_mb(result.get("peak_rss_bytes")),
        f"{cpu:.1f}" if cpu is not None else "N/A",
    )
    console.print(table)

    if result.get("last_id"):
        console.print(f"[dim]Last id: {result['last_id']}[/dim]")
    if result.get("error"):
        console.print(f"[bold red]Error:[/bold red] {result['error']}")
