"""
CLI utility helpers: output formatting.
"""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from rollout.update.models import RolloutOutcome

console = Console()
err_console = Console(stderr=True)


def print_mapping(data: dict[str, Any], *, as_json: bool = False, title: str = "") -> None:
    """Render a flat mapping as a two-column table or as JSON."""
    if as_json:
        console.print_json(json.dumps(data, default=str))
        return
    table = Table(title=title or None)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in data.items():
        table.add_row(str(key), str(value))
    console.print(table)


def output_outcome(
    outcome: RolloutOutcome,
    partitions: list[int | None],
    *,
    as_json: bool = False,
) -> None:
    """Render a rollout outcome; exits with code 1 when it failed."""
    payload: dict[str, Any] = {
        "ok": outcome.ok,
        "skip_sleep": outcome.skip_sleep,
        "partitions": partitions,
        "error": outcome.error.to_dict() if outcome.error else None,
    }

    if as_json:
        console.print_json(json.dumps(payload, default=str))
    else:
        table = Table(title="Persisted partitions")
        table.add_column("Step", justify="right")
        table.add_column("Partition", justify="right")
        for step, partition in enumerate(partitions, start=1):
            table.add_row(str(step), str(partition))
        console.print(table)
        console.print(f"skip_sleep: {outcome.skip_sleep}")

    if outcome.error is not None:
        err = outcome.error
        err_console.print(f"[bold red]Error[/bold red] ({err.kind.value}): {escape(err.message)}")
        raise typer.Exit(code=1)

    if not as_json:
        console.print("[green]Rollout complete[/green]")
