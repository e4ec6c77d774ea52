"""Domain models for the Vela database layer."""

from __future__ import annotations

from dataclasses import dataclass, field

FEEDBACK_VALUES = ("up", "down")


@dataclass
class User:
    id: str
    email: str
    name: str | None = None
    created_at: str | None = None


@dataclass
class Agent:
    id: str
    user_id: str
    name: str
    slug: str
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class ChatMessage:
    id: str
    conversation_id: str
    role: str  # "user" | "assistant"
    content: str
    created_at: str | None = None


@dataclass
class QaSource:
    id: str
    agent_id: str
    questions: list[str]
    answer: str  # raw, may contain markup
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class QaSourceSummary:
    """List projection of a QaSource: no answer, no chunks."""

    id: str
    questions: list[str]
    created_at: str
    updated_at: str


@dataclass
class QaSourceChunk:
    qa_source_id: str
    question: str
    content: str  # exact text sent to the embedding provider
    chunk_index: int
    embedding: list[float] = field(default_factory=list)
    id: str | None = None  # set on insert
    created_at: str | None = None


@dataclass
class MessageFeedback:
    id: str
    message_id: str
    feedback: str  # "up" | "down"
    session_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class FeedbackTally:
    message_id: str
    up: int = 0
    down: int = 0
    total: int = 0
