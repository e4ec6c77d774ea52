"""Vela database layer."""

from vela.db.connection import Database
from vela.db.migrations import MIGRATIONS, run_migrations
from vela.db.repository import Repository
from vela.db.schema import initialize

__all__ = [
    "Database",
    "Repository",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
]
