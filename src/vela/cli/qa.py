"""vela qa — Q&A knowledge source commands.

Commands:
  vela qa add --agent ID -q QUESTION [-q ...] --answer TEXT
  vela qa list --agent ID
  vela qa show ID
  vela qa update ID [-q QUESTION ...] [--answer TEXT]
  vela qa remove ID [--yes]

Every command resolves the tenant from --tenant / VELA_TENANT and only
touches sources of agents that tenant owns.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from vela.cli.agents import DbOption, TenantOption
from vela.cli.errors import console, fail
from vela.cli.session import open_session
from vela.errors import ValidationError, VelaError

qa_app = typer.Typer(
    name="qa",
    help="Manage Q&A knowledge sources (add, list, show, update, remove).",
    add_completion=False,
)

QuestionsOption = Annotated[
    list[str] | None,
    typer.Option("--question", "-q", help="Question variant (repeatable, order is kept)."),
]
AnswerOption = Annotated[
    str | None,
    typer.Option("--answer", "-a", help="Answer text (may contain HTML)."),
]
AnswerFileOption = Annotated[
    Path | None,
    typer.Option("--answer-file", help="Read the answer from a file instead."),
]


def _read_answer(answer: str | None, answer_file: Path | None) -> str | None:
    if answer is not None and answer_file is not None:
        raise ValidationError("Use either --answer or --answer-file, not both")
    if answer_file is not None:
        if not answer_file.is_file():
            raise ValidationError(f"Answer file not found: {answer_file}")
        return answer_file.read_text(encoding="utf-8")
    return answer


def _preview(text: str, width: int = 60) -> str:
    return text if len(text) <= width else text[: width - 1] + "…"


@qa_app.command("add")
def qa_add_cmd(
    agent: Annotated[str, typer.Option("--agent", help="Agent id that owns the Q&A.")],
    question: QuestionsOption = None,
    answer: AnswerOption = None,
    answer_file: AnswerFileOption = None,
    tenant: TenantOption = None,
    db: DbOption = None,
) -> None:
    """Add a Q&A source: one embedded chunk per question."""
    with open_session(db) as session:
        try:
            text = _read_answer(answer, answer_file)
            created = session.qa_sources().create(tenant, agent, question or [], text or "")
        except VelaError as exc:
            fail(exc)

    console.print(f"[green]✓[/] Created Q&A  ({created.chunk_count} chunks)")
    console.print(f"  id: {created.source.id}")


@qa_app.command("list")
def qa_list_cmd(
    agent: Annotated[str, typer.Option("--agent", help="Agent id.")],
    tenant: TenantOption = None,
    db: DbOption = None,
) -> None:
    """List an agent's Q&A sources, most recently updated first."""
    with open_session(db) as session:
        try:
            sources = session.qa_sources().list_sources(tenant, agent)
        except VelaError as exc:
            fail(exc)

    if not sources:
        console.print("[yellow]No Q&A sources for this agent.[/]")
        raise typer.Exit(0)

    table = Table(title="Q&A sources", show_header=True, header_style="bold")
    table.add_column("ID", no_wrap=True)
    table.add_column("First question")
    table.add_column("Questions", justify="right")
    table.add_column("Updated")
    for s in sources:
        table.add_row(s.id, escape(_preview(s.questions[0])), str(len(s.questions)), s.updated_at)
    console.print(table)


@qa_app.command("show")
def qa_show_cmd(
    source_id: Annotated[str, typer.Argument(help="Q&A source id.")],
    tenant: TenantOption = None,
    db: DbOption = None,
) -> None:
    """Show a Q&A source and its chunks."""
    with open_session(db) as session:
        service = session.qa_sources()
        try:
            source = service.get(tenant, source_id)
            chunks = service.chunks(tenant, source_id)
        except VelaError as exc:
            fail(exc)

    lines = [f"[bold]{i + 1}.[/] {escape(q)}" for i, q in enumerate(source.questions)]
    lines.append("")
    lines.append(escape(source.answer))
    console.print(Panel("\n".join(lines), title=f"[bold]Q&A {source.id}[/]", expand=False))

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Question")
    table.add_column("Dims", justify="right")
    for chunk in chunks:
        table.add_row(str(chunk.chunk_index), escape(_preview(chunk.question)), str(len(chunk.embedding)))
    console.print(table)
    console.print(f"  Created: {source.created_at}  |  Updated: {source.updated_at}")


@qa_app.command("update")
def qa_update_cmd(
    source_id: Annotated[str, typer.Argument(help="Q&A source id.")],
    question: QuestionsOption = None,
    answer: AnswerOption = None,
    answer_file: AnswerFileOption = None,
    tenant: TenantOption = None,
    db: DbOption = None,
) -> None:
    """Replace questions and/or answer; all chunks are regenerated."""
    with open_session(db) as session:
        try:
            text = _read_answer(answer, answer_file)
            updated = session.qa_sources().update(
                tenant, source_id, questions=question or None, answer=text
            )
        except VelaError as exc:
            fail(exc)

    console.print(f"[green]✓[/] Updated Q&A  ({len(updated.questions)} chunks)")
    console.print(f"  id: {updated.id}")


@qa_app.command("remove")
def qa_remove_cmd(
    source_id: Annotated[str, typer.Argument(help="Q&A source id.")],
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    tenant: TenantOption = None,
    db: DbOption = None,
) -> None:
    """Remove a Q&A source and its chunks."""
    with open_session(db) as session:
        service = session.qa_sources()
        try:
            source = service.get(tenant, source_id)
            chunk_count = len(service.chunks(tenant, source_id))

            console.print(f"\nRemove Q&A: [bold]{escape(_preview(source.questions[0]))}[/]")
            console.print(f"  Questions: {len(source.questions)}  |  Chunks: {chunk_count}")

            if not yes and not typer.confirm("Confirm removal?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

            service.delete(tenant, source_id)
        except VelaError as exc:
            fail(exc)

    console.print(f"\n[green]✓[/] Removed: {source_id}")
    console.print(f"  {chunk_count} chunks deleted")
