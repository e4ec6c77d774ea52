"""Repository pattern for all Vela database operations.

Single interface for: users, agents, chat messages, Q&A sources, Q&A chunks
and message feedback. Statements run in autocommit mode unless wrapped in
``Repository.transaction()``; every multi-row write must be.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

import sqlite_vec

from vela.db.models import (
    Agent,
    ChatMessage,
    FeedbackTally,
    MessageFeedback,
    QaSource,
    QaSourceChunk,
    QaSourceSummary,
    User,
)


def new_id() -> str:
    """Return a fresh row identifier."""
    return str(uuid.uuid4())


def utc_now() -> str:
    """Return the current UTC time as a sortable ISO-8601 string (microseconds)."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class Repository:
    """Data access layer for all Vela database entities.

    Wraps an open sqlite3.Connection (see vela.db.connection.Database) and
    provides typed methods per entity. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open autocommit sqlite3.Connection with sqlite-vec loaded
                and schema initialised (see vela.db.schema.initialize).
        """
        self._conn = conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed statements as one atomic unit.

        Takes the write lock up front (``BEGIN IMMEDIATE``) so read-then-write
        sequences inside the block are serialised against other writers.
        Commits on normal exit, rolls back and re-raises on any exception.
        A nested call joins the enclosing transaction.
        """
        if self._conn.in_transaction:
            yield self._conn
            return

        self._conn.execute("BEGIN IMMEDIATE")
        try:
            yield self._conn
        except BaseException:
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")
            raise
        else:
            self._conn.execute("COMMIT")

    # ------------------------------------------------------------------
    # Users + agents
    # ------------------------------------------------------------------

    def add_user(self, user: User) -> None:
        self._conn.execute(
            "INSERT INTO users (id, email, name, created_at) VALUES (?, ?, ?, ?)",
            (user.id, user.email, user.name, user.created_at or utc_now()),
        )

    def get_user(self, user_id: str) -> User | None:
        row = self._conn.execute(
            "SELECT id, email, name, created_at FROM users WHERE id = ?", (user_id,)
        ).fetchone()
        return User(**dict(row)) if row else None

    def add_agent(self, agent: Agent) -> None:
        """Insert a new agent owned by ``agent.user_id``."""
        now = utc_now()
        self._conn.execute(
            """
            INSERT INTO agents (id, user_id, name, slug, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                agent.id,
                agent.user_id,
                agent.name,
                agent.slug,
                agent.created_at or now,
                agent.updated_at or now,
            ),
        )

    def get_agent(self, agent_id: str) -> Agent | None:
        row = self._conn.execute(
            "SELECT id, user_id, name, slug, created_at, updated_at FROM agents WHERE id = ?",
            (agent_id,),
        ).fetchone()
        return Agent(**dict(row)) if row else None

    def list_agents(self, user_id: str) -> list[Agent]:
        """Return the agents owned by *user_id*, oldest first."""
        rows = self._conn.execute(
            """
            SELECT id, user_id, name, slug, created_at, updated_at
            FROM agents WHERE user_id = ? ORDER BY created_at, rowid
            """,
            (user_id,),
        ).fetchall()
        return [Agent(**dict(r)) for r in rows]

    def agent_owned_by(self, agent_id: str, user_id: str) -> bool:
        """Return True iff an agent with *agent_id* exists and belongs to *user_id*."""
        row = self._conn.execute(
            "SELECT 1 FROM agents WHERE id = ? AND user_id = ?", (agent_id, user_id)
        ).fetchone()
        return row is not None

    # ------------------------------------------------------------------
    # Chat messages
    # ------------------------------------------------------------------

    def add_message(self, message: ChatMessage) -> None:
        self._conn.execute(
            """
            INSERT INTO chat_messages (id, conversation_id, role, content, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                message.id,
                message.conversation_id,
                message.role,
                message.content,
                message.created_at or utc_now(),
            ),
        )

    def get_message(self, message_id: str) -> ChatMessage | None:
        row = self._conn.execute(
            "SELECT id, conversation_id, role, content, created_at FROM chat_messages WHERE id = ?",
            (message_id,),
        ).fetchone()
        return ChatMessage(**dict(row)) if row else None

    # ------------------------------------------------------------------
    # Q&A sources
    # ------------------------------------------------------------------

    def add_qa_source(self, source: QaSource) -> QaSource:
        """Insert *source*, stamping created_at/updated_at. Returns the stored row."""
        now = utc_now()
        source.created_at = source.created_at or now
        source.updated_at = source.updated_at or source.created_at
        self._conn.execute(
            """
            INSERT INTO qa_sources (id, agent_id, questions, answer, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                source.id,
                source.agent_id,
                json.dumps(source.questions),
                source.answer,
                source.created_at,
                source.updated_at,
            ),
        )
        return source

    def get_qa_source(self, source_id: str) -> QaSource | None:
        """Return a Q&A source by ID, or None if not found."""
        row = self._conn.execute(
            """
            SELECT id, agent_id, questions, answer, created_at, updated_at
            FROM qa_sources WHERE id = ?
            """,
            (source_id,),
        ).fetchone()
        return _row_to_qa_source(row) if row else None

    def get_qa_source_agent_id(self, source_id: str) -> str | None:
        """Return the owning agent id of a Q&A source, or None if not found."""
        row = self._conn.execute(
            "SELECT agent_id FROM qa_sources WHERE id = ?", (source_id,)
        ).fetchone()
        return row["agent_id"] if row else None

    def list_qa_sources(self, agent_id: str) -> list[QaSourceSummary]:
        """Return the agent's Q&A sources, most recently updated first."""
        rows = self._conn.execute(
            """
            SELECT id, questions, created_at, updated_at
            FROM qa_sources WHERE agent_id = ?
            ORDER BY updated_at DESC, created_at DESC, rowid DESC
            """,
            (agent_id,),
        ).fetchall()
        return [
            QaSourceSummary(
                id=r["id"],
                questions=json.loads(r["questions"]),
                created_at=r["created_at"],
                updated_at=r["updated_at"],
            )
            for r in rows
        ]

    def update_qa_source(self, source_id: str, questions: list[str], answer: str) -> QaSource | None:
        """Overwrite questions/answer and bump updated_at. Returns the new row."""
        self._conn.execute(
            "UPDATE qa_sources SET questions = ?, answer = ?, updated_at = ? WHERE id = ?",
            (json.dumps(questions), answer, utc_now(), source_id),
        )
        return self.get_qa_source(source_id)

    def delete_qa_source(self, source_id: str) -> bool:
        """Delete a Q&A source; its chunks go with it (ON DELETE CASCADE)."""
        cur = self._conn.execute("DELETE FROM qa_sources WHERE id = ?", (source_id,))
        return cur.rowcount > 0

    # ------------------------------------------------------------------
    # Q&A chunks
    # ------------------------------------------------------------------

    def add_qa_chunks(self, chunks: list[QaSourceChunk]) -> list[str]:
        """Insert *chunks* (embeddings as sqlite-vec float32 blobs). Returns new ids."""
        ids: list[str] = []
        for chunk in chunks:
            chunk.id = chunk.id or new_id()
            chunk.created_at = chunk.created_at or utc_now()
            self._conn.execute(
                """
                INSERT INTO qa_source_chunks
                    (id, qa_source_id, question, content, chunk_index, embedding, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    chunk.id,
                    chunk.qa_source_id,
                    chunk.question,
                    chunk.content,
                    chunk.chunk_index,
                    sqlite_vec.serialize_float32(chunk.embedding),
                    chunk.created_at,
                ),
            )
            ids.append(chunk.id)
        return ids

    def list_qa_chunks(self, source_id: str) -> list[QaSourceChunk]:
        """Return the chunks of a Q&A source in chunk_index order."""
        rows = self._conn.execute(
            """
            SELECT id, qa_source_id, question, content, chunk_index,
                   vec_to_json(embedding) AS embedding_json, created_at
            FROM qa_source_chunks WHERE qa_source_id = ?
            ORDER BY chunk_index
            """,
            (source_id,),
        ).fetchall()
        return [_row_to_qa_chunk(r) for r in rows]

    def count_qa_chunks(self, source_id: str) -> int:
        return self._conn.execute(
            "SELECT COUNT(*) FROM qa_source_chunks WHERE qa_source_id = ?", (source_id,)
        ).fetchone()[0]

    def delete_qa_chunks(self, source_id: str) -> int:
        """Delete every chunk of *source_id*. Returns the number of rows removed."""
        cur = self._conn.execute(
            "DELETE FROM qa_source_chunks WHERE qa_source_id = ?", (source_id,)
        )
        return cur.rowcount

    # ------------------------------------------------------------------
    # Message feedback
    # ------------------------------------------------------------------

    def add_feedback(self, message_id: str, feedback: str, session_id: str | None = None) -> str:
        """Insert a new feedback row unconditionally. Returns its id."""
        feedback_id = new_id()
        now = utc_now()
        self._conn.execute(
            """
            INSERT INTO message_feedback (id, message_id, feedback, session_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (feedback_id, message_id, feedback, session_id, now, now),
        )
        return feedback_id

    def get_session_feedback(self, message_id: str, session_id: str) -> MessageFeedback | None:
        row = self._conn.execute(
            """
            SELECT id, message_id, feedback, session_id, created_at, updated_at
            FROM message_feedback WHERE message_id = ? AND session_id = ?
            """,
            (message_id, session_id),
        ).fetchone()
        return MessageFeedback(**dict(row)) if row else None

    def upsert_session_feedback(self, message_id: str, feedback: str, session_id: str) -> None:
        """Insert or overwrite the single (message, session) feedback row.

        Relies on the partial unique index message_feedback_session_uq.
        """
        now = utc_now()
        self._conn.execute(
            """
            INSERT INTO message_feedback (id, message_id, feedback, session_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT (message_id, session_id) WHERE session_id IS NOT NULL DO UPDATE SET
                feedback = excluded.feedback,
                updated_at = excluded.updated_at
            """,
            (new_id(), message_id, feedback, session_id, now, now),
        )

    def list_feedback(self, message_id: str) -> list[MessageFeedback]:
        rows = self._conn.execute(
            """
            SELECT id, message_id, feedback, session_id, created_at, updated_at
            FROM message_feedback WHERE message_id = ? ORDER BY created_at, rowid
            """,
            (message_id,),
        ).fetchall()
        return [MessageFeedback(**dict(r)) for r in rows]

    def tally_feedback(self, message_id: str) -> FeedbackTally:
        """Count up/down/total over every feedback row of *message_id*."""
        row = self._conn.execute(
            """
            SELECT
                COALESCE(SUM(feedback = 'up'), 0)   AS up,
                COALESCE(SUM(feedback = 'down'), 0) AS down,
                COUNT(*)                            AS total
            FROM message_feedback WHERE message_id = ?
            """,
            (message_id,),
        ).fetchone()
        return FeedbackTally(
            message_id=message_id, up=row["up"], down=row["down"], total=row["total"]
        )


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------


def _row_to_qa_source(row: sqlite3.Row) -> QaSource:
    return QaSource(
        id=row["id"],
        agent_id=row["agent_id"],
        questions=json.loads(row["questions"]),
        answer=row["answer"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_qa_chunk(row: sqlite3.Row) -> QaSourceChunk:
    return QaSourceChunk(
        id=row["id"],
        qa_source_id=row["qa_source_id"],
        question=row["question"],
        content=row["content"],
        chunk_index=row["chunk_index"],
        embedding=json.loads(row["embedding_json"]),
        created_at=row["created_at"],
    )
