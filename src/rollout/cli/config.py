"""
CLI: ``rollout-core config``: configuration inspection.
"""

from __future__ import annotations

import typer
from rich.markup import escape

from rollout.cli.utils import console, err_console, print_mapping

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, env"),
) -> None:
    """Show the effective settings."""
    from pydantic import ValidationError

    from rollout.core.settings import RolloutSettings

    try:
        settings = RolloutSettings()
    except ValidationError as exc:
        err_console.print(f"[bold red]Invalid configuration[/bold red]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    if format == "env":
        for key, value in sorted(settings.model_dump().items()):
            console.print(f"ROLLOUT_{key.upper()}={'' if value is None else value}")
        return

    print_mapping(settings.model_dump(), as_json=format == "json", title="Rollout settings")
