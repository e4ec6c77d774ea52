"""Shared CLI plumbing: config, database handle, service wiring."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import typer

from vela.cli.errors import console, err_no_db
from vela.config import VelaConfig, load_config
from vela.db.connection import Database
from vela.db.repository import Repository
from vela.db.schema import initialize
from vela.ingest.embeddings import EmbeddingClient
from vela.services.feedback import FeedbackAggregator
from vela.services.qa_sources import QaSourceService


@dataclass
class Session:
    conn: sqlite3.Connection
    repo: Repository
    config: VelaConfig

    def qa_sources(self) -> QaSourceService:
        embedder = EmbeddingClient(self.config.embedding.to_embedding_config())
        return QaSourceService(self.repo, embedder, self.config.limits)

    def feedback(self) -> FeedbackAggregator:
        return FeedbackAggregator(self.repo)


def resolve_db_path(db: Path | None, cfg: VelaConfig) -> Path:
    """--db flag wins over config (vela.yaml / VELA_DB)."""
    return db if db is not None else Path(cfg.database.path)


@contextmanager
def open_session(db: Path | None) -> Iterator[Session]:
    """Open an existing database, or exit 1 with a hint to run ``vela init``."""
    cfg = load_config()
    db_path = resolve_db_path(db, cfg)
    if not db_path.exists():
        console.print(err_no_db(str(db_path)))
        raise typer.Exit(1)

    conn = Database(db_path, timeout=cfg.database.timeout).connect()
    try:
        initialize(conn)
        yield Session(conn=conn, repo=Repository(conn), config=cfg)
    finally:
        conn.close()
