"""
skillswap.errors — Error taxonomy
==================================

Every failure in the core is raised as one of these.  The API layer maps
``status_code`` / ``kind`` straight onto the HTTP response, so callers can
always tell a bad payload from a wrong actor from a stale status.
"""

from __future__ import annotations

from typing import Any


class SkillSwapError(Exception):
    status_code: int = 500
    kind: str = "INTERNAL_ERROR"

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.kind, "detail": self.reason}
        if self.details:
            body.update(self.details)
        return body


class ValidationError(SkillSwapError):
    """Malformed or out-of-range input.  Never retried."""
    status_code = 400
    kind = "VALIDATION_ERROR"


class NotFound(SkillSwapError):
    status_code = 404
    kind = "NOT_FOUND"


class Forbidden(SkillSwapError):
    """The actor may not perform this operation on this record."""
    status_code = 403
    kind = "FORBIDDEN"


class InvalidState(SkillSwapError):
    """The transition is not legal from the record's current status."""
    status_code = 409
    kind = "INVALID_STATE"

    def __init__(self, reason: str, current_status: str | None = None) -> None:
        details = {"current_status": current_status} if current_status else None
        super().__init__(reason, details)
        self.current_status = current_status


class AlreadySubmitted(InvalidState):
    """The participant's feedback slot is already filled."""
    kind = "ALREADY_SUBMITTED"


class ConcurrencyConflict(SkillSwapError):
    """Optimistic-lock loss.  Retried once internally before surfacing."""
    status_code = 409
    kind = "CONCURRENCY_CONFLICT"
