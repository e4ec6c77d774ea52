"""Q&A knowledge sources: create, update, read, list, delete.

Each QaSource owns one chunk per question, in question order:
  chunk i  →  question=questions[i], content="Q: {questions[i]}\\nA: {normalize(answer)}"

Chunks are never edited in place. Create and Update embed the complete chunk
set first (one provider call), then write parent and chunks in a single
transaction, so a reader never sees a source with zero or mismatched chunks
and a failed call leaves the stored rows exactly as they were.

Concurrent updates of the same source are not serialised here: the last
committed write wins.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass

from vela.config import LimitsCfg
from vela.db.models import QaSource, QaSourceChunk, QaSourceSummary
from vela.db.repository import Repository, new_id
from vela.errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from vela.ingest.embeddings import EmbeddingProvider
from vela.ingest.text import build_embedding_texts, normalize
from vela.services.guard import (
    QA_NOT_FOUND,
    OwnershipGuard,
    requires_agent_owner,
    requires_source_owner,
)


@dataclass
class CreatedQaSource:
    source: QaSource
    chunk_count: int


class QaSourceService:
    """Tenant-scoped operations on Q&A sources and their chunks.

    Args:
        repo: Open Repository.
        embedder: Order-preserving batch embedding provider.
        limits: Input size limits (defaults from LimitsCfg).
    """

    def __init__(
        self,
        repo: Repository,
        embedder: EmbeddingProvider,
        limits: LimitsCfg | None = None,
    ) -> None:
        self._repo = repo
        self._embedder = embedder
        self._limits = limits or LimitsCfg()
        self.guard = OwnershipGuard(repo)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @requires_agent_owner
    def create(
        self, tenant_id: str, agent_id: str, questions: Sequence[str], answer: str
    ) -> CreatedQaSource:
        """Create a Q&A source for *agent_id* with one embedded chunk per question."""
        question_list = self._validate_questions(questions)
        self._validate_answer(answer)

        source_id = new_id()
        chunks = self._build_chunks(source_id, question_list, answer)

        try:
            with self._repo.transaction():
                source = self._repo.add_qa_source(
                    QaSource(id=source_id, agent_id=agent_id, questions=question_list, answer=answer)
                )
                self._repo.add_qa_chunks(chunks)
        except sqlite3.IntegrityError as exc:
            raise ConflictError(f"Q&A source could not be stored: {exc}") from exc

        return CreatedQaSource(source=source, chunk_count=len(chunks))

    @requires_source_owner
    def update(
        self,
        tenant_id: str,
        source_id: str,
        questions: Sequence[str] | None = None,
        answer: str | None = None,
    ) -> QaSource:
        """Replace questions and/or answer and regenerate every chunk.

        Fields not supplied keep their stored value. The full chunk set is
        re-embedded even when only one field changed.
        """
        if questions is None and answer is None:
            raise ValidationError("questions or answer required")
        if questions is not None:
            questions = self._validate_questions(questions)
        if answer is not None:
            self._validate_answer(answer)

        existing = self._repo.get_qa_source(source_id)
        if existing is None:
            raise NotFoundError(QA_NOT_FOUND)

        new_questions = list(questions) if questions is not None else existing.questions
        new_answer = answer if answer is not None else existing.answer
        chunks = self._build_chunks(source_id, new_questions, new_answer)

        try:
            with self._repo.transaction():
                if self._repo.get_qa_source_agent_id(source_id) is None:
                    raise NotFoundError(QA_NOT_FOUND)
                self._repo.delete_qa_chunks(source_id)
                self._repo.add_qa_chunks(chunks)
                updated = self._repo.update_qa_source(source_id, new_questions, new_answer)
        except sqlite3.IntegrityError as exc:
            raise ConflictError(f"Q&A source could not be updated: {exc}") from exc

        return updated

    @requires_source_owner
    def get(self, tenant_id: str, source_id: str) -> QaSource:
        source = self._repo.get_qa_source(source_id)
        if source is None:
            raise NotFoundError(QA_NOT_FOUND)
        return source

    @requires_source_owner
    def chunks(self, tenant_id: str, source_id: str) -> list[QaSourceChunk]:
        """Return the source's chunks in chunk_index order."""
        return self._repo.list_qa_chunks(source_id)

    @requires_agent_owner
    def list_sources(self, tenant_id: str, agent_id: str) -> list[QaSourceSummary]:
        """Return the agent's sources, most recently updated first."""
        return self._repo.list_qa_sources(agent_id)

    @requires_source_owner
    def delete(self, tenant_id: str, source_id: str) -> None:
        """Delete the source; its chunks are removed by cascade."""
        with self._repo.transaction():
            if not self._repo.delete_qa_source(source_id):
                raise NotFoundError(QA_NOT_FOUND)

    # ------------------------------------------------------------------
    # Chunk construction
    # ------------------------------------------------------------------

    def _build_chunks(
        self, source_id: str, questions: list[str], answer: str
    ) -> list[QaSourceChunk]:
        """Normalise, build embedding texts, and embed them in one batch call."""
        texts = build_embedding_texts(normalize(answer), questions)
        embeddings = self._embedder.embed(texts)
        if len(embeddings) != len(texts):
            raise UpstreamError(
                f"Embedding provider returned {len(embeddings)} vectors for {len(texts)} texts."
            )
        return [
            QaSourceChunk(
                qa_source_id=source_id,
                question=question,
                content=texts[index],
                chunk_index=index,
                embedding=embeddings[index],
            )
            for index, question in enumerate(questions)
        ]

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_questions(self, questions: Sequence[str]) -> list[str]:
        if isinstance(questions, str) or not isinstance(questions, Sequence):
            raise ValidationError("questions must be a list of strings")
        if len(questions) == 0:
            raise ValidationError("At least one question required")
        if len(questions) > self._limits.max_questions:
            raise ValidationError(
                f"At most {self._limits.max_questions} questions allowed"
            )
        for index, question in enumerate(questions):
            if not isinstance(question, str) or not question.strip():
                raise ValidationError(f"Question {index + 1} must not be blank")
            if len(question) > self._limits.max_question_chars:
                raise ValidationError(
                    f"Question {index + 1} exceeds {self._limits.max_question_chars} characters"
                )
        return list(questions)

    def _validate_answer(self, answer: str) -> None:
        if not isinstance(answer, str) or not answer.strip():
            raise ValidationError("Answer required")
        if len(answer) > self._limits.max_answer_chars:
            raise ValidationError(
                f"Answer exceeds {self._limits.max_answer_chars} characters"
            )
