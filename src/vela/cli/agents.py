"""vela agents — minimal agent bookkeeping so Q&A sources have an owner.

Commands:
  vela agents add --name NAME   — create an agent for the current tenant
  vela agents list              — list the tenant's agents
"""

from __future__ import annotations

import re
import sqlite3
from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from vela.cli.errors import console, fail
from vela.cli.session import open_session
from vela.db.models import Agent, User
from vela.db.repository import new_id
from vela.errors import ConflictError, ValidationError, VelaError
from vela.services.guard import require_tenant

agents_app = typer.Typer(
    name="agents",
    help="Manage agents (add, list).",
    add_completion=False,
)

TenantOption = Annotated[
    str | None,
    typer.Option("--tenant", "-t", envvar="VELA_TENANT", help="Tenant (user) id."),
]
DbOption = Annotated[
    Path | None,
    typer.Option("--db", help="Path to the database."),
]


def slugify(name: str) -> str:
    """'Support Bot v2' -> 'support-bot-v2'."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "agent"


@agents_app.command("add")
def agents_add_cmd(
    name: Annotated[str, typer.Option("--name", "-n", help="Agent display name.")],
    tenant: TenantOption = None,
    email: Annotated[
        str | None,
        typer.Option("--email", help="Tenant email, used when the tenant is new."),
    ] = None,
    db: DbOption = None,
) -> None:
    """Create an agent owned by the tenant (the tenant is created if new)."""
    with open_session(db) as session:
        try:
            tenant_id = require_tenant(tenant)
            if not name.strip():
                raise ValidationError("Agent name required")
            agent = Agent(id=new_id(), user_id=tenant_id, name=name.strip(), slug=slugify(name))
            try:
                with session.repo.transaction():
                    if session.repo.get_user(tenant_id) is None:
                        session.repo.add_user(
                            User(id=tenant_id, email=email or f"{tenant_id}@localhost", name=None)
                        )
                    session.repo.add_agent(agent)
            except sqlite3.IntegrityError as exc:
                raise ConflictError(f"Agent could not be created: {exc}") from exc
        except VelaError as exc:
            fail(exc)

    console.print(f"[green]✓[/] Agent [bold]{agent.name}[/] created")
    console.print(f"  id: {agent.id}")


@agents_app.command("list")
def agents_list_cmd(tenant: TenantOption = None, db: DbOption = None) -> None:
    """List the tenant's agents."""
    with open_session(db) as session:
        try:
            agents = session.repo.list_agents(require_tenant(tenant))
        except VelaError as exc:
            fail(exc)

    if not agents:
        console.print("[yellow]No agents yet.[/]  Run:  vela agents add --name <name>")
        raise typer.Exit(0)

    table = Table(title="Agents", show_header=True, header_style="bold")
    table.add_column("ID", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Slug")
    table.add_column("Created")
    for agent in agents:
        table.add_row(agent.id, agent.name, agent.slug, agent.created_at or "")
    console.print(table)
