"""Exception types raised by the planning core.

Client-visible validation failures subclass ``ValueError`` and transport
failures subclass ``ConnectionError`` so callers that only know the builtin
types keep working.
"""

from __future__ import annotations

EXCERPT_LIMIT = 500


def truncate_excerpt(payload: str | None, limit: int = EXCERPT_LIMIT) -> str:
    if not payload:
        return ""
    if len(payload) <= limit:
        return payload
    return payload[:limit] + "..."


class PlanningError(Exception):
    """Base class for all planning failures."""


class RateLimitExceededError(PlanningError):
    """The caller exhausted its request budget for the current window."""

    def __init__(self, caller_id: str, retry_after_ms: int) -> None:
        super().__init__(
            f"Rate limit exceeded for caller '{caller_id}'. Try again in {max(1, retry_after_ms // 1000)}s."
        )
        self.caller_id = caller_id
        self.retry_after_ms = retry_after_ms


class OracleConfigError(PlanningError):
    """The sequencing oracle cannot be used at all (e.g. missing credential)."""


class OracleUnavailableError(PlanningError, ConnectionError):
    """The oracle could not be reached or refused the request."""

    def __init__(self, message: str, *, fatal: bool = False) -> None:
        super().__init__(message)
        self.fatal = fatal


class OracleResponseInvalidError(PlanningError, ValueError):
    """The oracle answered with non-JSON or schema-violating content."""

    def __init__(self, message: str, payload: str | None = None) -> None:
        self.excerpt = truncate_excerpt(payload)
        super().__init__(message)


class UntrustedInstructionError(PlanningError, ValueError):
    """A free-text policy override was rejected before reaching the prompt."""
