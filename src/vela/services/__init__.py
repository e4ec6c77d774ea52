"""Vela services: tenant-guarded Q&A sources and message feedback."""

from vela.services.feedback import FeedbackAggregator, FeedbackResult
from vela.services.guard import OwnershipGuard, requires_agent_owner, requires_source_owner
from vela.services.qa_sources import CreatedQaSource, QaSourceService

__all__ = [
    "CreatedQaSource",
    "FeedbackAggregator",
    "FeedbackResult",
    "OwnershipGuard",
    "QaSourceService",
    "requires_agent_owner",
    "requires_source_owner",
]
