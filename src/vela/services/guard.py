"""Tenant ownership checks for agent- and source-scoped operations.

Ownership is one predicate ("the agent exists and belongs to this tenant"),
composed with service methods through two decorators rather than re-checked
inline in each method. A failed check is reported exactly like a missing
record so other tenants' resources cannot be probed.

Decorated methods must take ``(self, tenant_id, <resource_id>, ...)`` and the
instance must expose an ``OwnershipGuard`` as ``self.guard``.
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

from vela.db.repository import Repository
from vela.errors import NotFoundError, UnauthorizedError, ValidationError

AGENT_NOT_FOUND = "agent not found"
QA_NOT_FOUND = "Q&A not found"

F = TypeVar("F", bound=Callable[..., Any])


class OwnershipGuard:
    """Answers "does this tenant own this agent / Q&A source?"."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def verify(self, agent_id: str, tenant_id: str) -> bool:
        """True iff an agent row exists with *agent_id* AND owner *tenant_id*."""
        return self._repo.agent_owned_by(agent_id, tenant_id)

    def verify_source(self, source_id: str, tenant_id: str) -> bool:
        """Resolve the source's agent, then apply :meth:`verify`."""
        agent_id = self._repo.get_qa_source_agent_id(source_id)
        return agent_id is not None and self.verify(agent_id, tenant_id)


def require_tenant(tenant_id: str | None) -> str:
    """Return *tenant_id* or raise UnauthorizedError if it is missing/blank."""
    if tenant_id is None or not str(tenant_id).strip():
        raise UnauthorizedError()
    return tenant_id


def requires_agent_owner(method: F) -> F:
    """Gate a method whose second argument is an agent id."""

    @functools.wraps(method)
    def wrapper(self: Any, tenant_id: str | None, agent_id: str, *args: Any, **kwargs: Any) -> Any:
        tenant = require_tenant(tenant_id)
        if not agent_id or not str(agent_id).strip():
            raise ValidationError("agentId required")
        if not self.guard.verify(agent_id, tenant):
            raise NotFoundError(AGENT_NOT_FOUND)
        return method(self, tenant, agent_id, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def requires_source_owner(method: F) -> F:
    """Gate a method whose second argument is a Q&A source id."""

    @functools.wraps(method)
    def wrapper(self: Any, tenant_id: str | None, source_id: str, *args: Any, **kwargs: Any) -> Any:
        tenant = require_tenant(tenant_id)
        if not source_id or not self.guard.verify_source(source_id, tenant):
            raise NotFoundError(QA_NOT_FOUND)
        return method(self, tenant, source_id, *args, **kwargs)

    return wrapper  # type: ignore[return-value]
