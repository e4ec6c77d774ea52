"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from vela.db.connection import Database
from vela.db.models import Agent, ChatMessage, User
from vela.db.repository import Repository
from vela.db.schema import initialize
from vela.errors import UpstreamError

TENANT_A = "user-a"
TENANT_B = "user-b"
AGENT_A = "agent-a"
AGENT_B = "agent-b"


class FakeEmbedder:
    """Deterministic 4-dim embedder; records every batch it receives.

    Vector components are small integers / binary fractions so they survive
    the float32 round trip through sqlite-vec unchanged.
    """

    dimensions = 4

    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [vector_for(t) for t in texts]


class FailingEmbedder:
    def __init__(self) -> None:
        self.calls: list[list[str]] = []

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        raise UpstreamError("provider unavailable")


def vector_for(text: str) -> list[float]:
    return [float(len(text)), float(sum(map(ord, text)) % 97), 0.25, 1.0]


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".vela.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


@pytest.fixture
def seeded_repo(repo):
    """Two tenants, one agent each, plus one assistant and one user message."""
    for tenant, agent in ((TENANT_A, AGENT_A), (TENANT_B, AGENT_B)):
        repo.add_user(User(id=tenant, email=f"{tenant}@example.com"))
        repo.add_agent(Agent(id=agent, user_id=tenant, name=f"Bot {tenant}", slug=f"bot-{tenant}"))
    repo.add_message(ChatMessage(id="msg-bot", conversation_id="conv-1", role="assistant", content="Hi!"))
    repo.add_message(ChatMessage(id="msg-user", conversation_id="conv-1", role="user", content="Hello"))
    return repo


@pytest.fixture
def embedder():
    return FakeEmbedder()
