"""Error taxonomy for the Vela knowledge core.

Validation and ownership failures are raised before any external call or
write. Upstream and store failures abort the whole operation. Nothing here is
retried automatically; callers decide based on the error kind.
"""

from __future__ import annotations


class VelaError(Exception):
    """Base class for all errors surfaced to callers."""

    exit_code = 1

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(VelaError):
    """Missing, blank, or oversized input. Carries the first violated rule."""

    exit_code = 2


class UnauthorizedError(VelaError):
    """No tenant identity could be resolved for the request."""

    exit_code = 3

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class NotFoundError(VelaError):
    """Record absent, or present but owned by another tenant.

    The two causes are deliberately indistinguishable to the caller.
    """

    exit_code = 4


class ConflictError(VelaError):
    """Write conflicts with existing state."""

    exit_code = 5


class UpstreamError(VelaError):
    """The embedding provider failed; the enclosing operation wrote nothing."""

    exit_code = 6
