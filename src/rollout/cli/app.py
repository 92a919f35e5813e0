"""
Root Typer application for the rollout-core CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="rollout-core",
    help="rollout-core: partitioned rollouts for ordered replicated workloads.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from rollout import __version__

        typer.echo(f"rollout-core {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """rollout-core CLI: inspect settings and simulate rollouts."""


# ── Sub-command registration ─────────────────────────────────────────────

from rollout.cli.config import app as config_app  # noqa: E402
from rollout.cli.simulate import simulate  # noqa: E402

app.add_typer(config_app, name="config", help="Configuration inspection.")
app.command("simulate")(simulate)


if __name__ == "__main__":
    app()
