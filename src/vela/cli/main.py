"""Vela CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from vela.cli.agents import agents_app
from vela.cli.feedback import feedback_app
from vela.cli.init import init_cmd
from vela.cli.qa import qa_app


def _installed_version() -> str:
    try:
        return importlib.metadata.version("vela")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"vela {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="vela",
    help=(
        "Vela — agent Q&A knowledge and reply feedback.\n\n"
        "  vela qa        Manage Q&A sources (embedded one chunk per question).\n"
        "  vela feedback  Record and count thumbs up/down on assistant replies."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Vela — agent Q&A knowledge and reply feedback."""


app.command("init")(init_cmd)
app.add_typer(agents_app, name="agents")
app.add_typer(qa_app, name="qa")
app.add_typer(feedback_app, name="feedback")


@app.command("version")
def version_cmd() -> None:
    """Show the installed Vela version."""
    typer.echo(f"vela {_installed_version()}")


if __name__ == "__main__":
    app()
