"""Per-message feedback: session-keyed upsert and on-demand tallies.

A submission with a session id overwrites that session's earlier vote on the
same message (enforced by the message_feedback_session_uq partial unique index
and an immediate transaction). A submission without a session id always adds
a new row. Tallies count every stored row.
"""

from __future__ import annotations

from dataclasses import dataclass

from vela.db.models import FEEDBACK_VALUES, FeedbackTally
from vela.db.repository import Repository
from vela.errors import NotFoundError, ValidationError

MESSAGE_NOT_FOUND = "Message not found"


@dataclass
class FeedbackResult:
    message_id: str
    feedback: str
    updated: bool  # True: an existing (message, session) row was overwritten


class FeedbackAggregator:
    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def submit(self, message_id: str, value: str, session_id: str | None = None) -> FeedbackResult:
        """Record *value* ("up" / "down") for an assistant message.

        Raises:
            ValidationError: Blank message id, unknown value, or the message
                was not written by the assistant.
            NotFoundError: No message with *message_id*.
        """
        if not message_id or not message_id.strip():
            raise ValidationError("messageId required")
        if value not in FEEDBACK_VALUES:
            raise ValidationError("feedback must be 'up' or 'down'")
        session_id = session_id or None

        message = self._repo.get_message(message_id)
        if message is None:
            raise NotFoundError(MESSAGE_NOT_FOUND)
        if message.role != "assistant":
            raise ValidationError("Can only provide feedback on assistant messages")

        with self._repo.transaction():
            if session_id is None:
                self._repo.add_feedback(message_id, value)
                return FeedbackResult(message_id=message_id, feedback=value, updated=False)

            existing = self._repo.get_session_feedback(message_id, session_id)
            self._repo.upsert_session_feedback(message_id, value, session_id)

        return FeedbackResult(message_id=message_id, feedback=value, updated=existing is not None)

    def tally(self, message_id: str) -> FeedbackTally:
        """Return up/down/total counts over every feedback row of *message_id*."""
        return self._repo.tally_feedback(message_id)
