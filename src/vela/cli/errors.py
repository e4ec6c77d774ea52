"""Vela rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from vela.cli.errors import fail
    try:
        service.create(...)
    except VelaError as exc:
        fail(exc)
"""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.console import Console

from vela.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    UpstreamError,
    ValidationError,
    VelaError,
)

console = Console()


def err_no_db(db_path: str = ".vela.db") -> str:
    """No database found at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  vela init"
    )


def err_unauthorized() -> str:
    """No tenant identity supplied."""
    return (
        "[red]Error:[/] No tenant identity.\n"
        "  Pass --tenant <user-id> or set:  export VELA_TENANT=<user-id>"
    )


def err_not_found(message: str) -> str:
    """Record absent or owned by another tenant (indistinguishable by design)."""
    return (
        f"[yellow]Not found:[/] {message}.\n"
        "  Run:  vela agents list  /  vela qa list --agent <id>  to see what you own."
    )


def err_validation(message: str) -> str:
    return f"[red]Invalid input:[/] {message}."


def err_upstream(message: str) -> str:
    """Embedding provider failed; nothing was written."""
    return (
        f"[red]Error:[/] Embedding provider failed: {message}\n"
        "  No changes were saved. Check your API key / network and retry the same command."
    )


def err_conflict(message: str) -> str:
    return (
        f"[red]Error:[/] {message}\n"
        "  The record changed while the command ran. Re-run the command."
    )


def render(exc: VelaError) -> str:
    """Return the user-facing message for *exc*."""
    if isinstance(exc, UnauthorizedError):
        return err_unauthorized()
    if isinstance(exc, NotFoundError):
        return err_not_found(exc.message)
    if isinstance(exc, ValidationError):
        return err_validation(exc.message)
    if isinstance(exc, UpstreamError):
        return err_upstream(exc.message)
    if isinstance(exc, ConflictError):
        return err_conflict(exc.message)
    return f"[red]Error:[/] {exc.message}"


def fail(exc: VelaError) -> NoReturn:
    """Print *exc* and exit with its error-kind exit code."""
    console.print(render(exc))
    raise typer.Exit(exc.exit_code)
