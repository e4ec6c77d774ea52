"""vela feedback — thumbs up/down on assistant replies.

Commands:
  vela feedback submit MESSAGE_ID up|down [--session S]
  vela feedback tally MESSAGE_ID
"""

from __future__ import annotations

from typing import Annotated

import typer

from vela.cli.agents import DbOption
from vela.cli.errors import console, fail
from vela.cli.session import open_session
from vela.errors import VelaError

feedback_app = typer.Typer(
    name="feedback",
    help="Record and count feedback on assistant messages.",
    add_completion=False,
)


@feedback_app.command("submit")
def feedback_submit_cmd(
    message_id: Annotated[str, typer.Argument(help="Assistant message id.")],
    value: Annotated[str, typer.Argument(help="'up' or 'down'.")],
    session_id: Annotated[
        str | None,
        typer.Option("--session", "-s", help="Anonymous session id; repeat votes overwrite."),
    ] = None,
    db: DbOption = None,
) -> None:
    """Record feedback; a repeat vote from the same session overwrites the first."""
    with open_session(db) as session:
        try:
            result = session.feedback().submit(message_id, value.strip().lower(), session_id)
        except VelaError as exc:
            fail(exc)

    verb = "Updated" if result.updated else "Recorded"
    console.print(f"[green]✓[/] {verb} feedback '{result.feedback}' on {result.message_id}")


@feedback_app.command("tally")
def feedback_tally_cmd(
    message_id: Annotated[str, typer.Argument(help="Message id.")],
    db: DbOption = None,
) -> None:
    """Show up/down/total counts for a message."""
    with open_session(db) as session:
        tally = session.feedback().tally(message_id)

    console.print(
        f"{tally.message_id}:  [green]up {tally.up}[/]  |  "
        f"[red]down {tally.down}[/]  |  total {tally.total}"
    )
