from __future__ import annotations

from dataclasses import dataclass

from rpos.domain.errors import NotFoundError, OperationCancelledError, PersistenceError, ValidationError


@dataclass(frozen=True)
class Feedback:
    kind: str  # toast kind: info | warn | error
    message: str
    dialog: bool
    log_exception: bool


def feedback_for(exc: Exception, fallback: str = "Operation failed.") -> Feedback:
    """How the UI reports an exception raised by a user action."""
    if isinstance(exc, OperationCancelledError):
        return Feedback("info", str(exc) or "Cancelled.", dialog=False, log_exception=False)
    if isinstance(exc, (ValidationError, NotFoundError)):
        return Feedback("warn", str(exc) or fallback, dialog=True, log_exception=False)
    if isinstance(exc, PersistenceError):
        return Feedback("error", str(exc) or fallback, dialog=True, log_exception=True)
    # unexpected errors never show their raw text
    return Feedback("error", fallback, dialog=True, log_exception=True)
