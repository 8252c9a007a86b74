"""
Error taxonomy for the automation core.

Page-level misses (NotFound, Timeout) are normal outcomes and are mostly
signalled by return values; these exceptions only carry a failure from deep
inside one profile's pipeline back to the profile boundary, where it becomes
a recorded outcome.
"""
from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    TRANSPORT_FAILURE = "transport_failure"
    STATE_CORRUPT = "state_corrupt"
    VALIDATION_FAILURE = "validation_failure"
    UNEXPECTED = "unexpected"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    ErrorKind.NOT_FOUND: "Element not found on page",
    ErrorKind.TIMEOUT: "Page did not respond in time",
    ErrorKind.TRANSPORT_FAILURE: "External service unavailable",
    ErrorKind.STATE_CORRUPT: "Saved progress was unreadable",
    ErrorKind.VALIDATION_FAILURE: "Invalid profile data",
    ErrorKind.UNEXPECTED: "Unexpected error",
}


class AutomationError(Exception):
    """Base class for automation core errors."""


class ProfileStepFailed(AutomationError):
    """A per-profile step could not complete; the profile is recorded as failed."""

    def __init__(self, kind: ErrorKind, reason: str):
        super().__init__(reason)
        self.kind = kind
        self.reason = reason


class GenerationError(AutomationError):
    """The message-generation collaborator failed or returned garbage."""


class StateCorrupt(AutomationError):
    """Persisted workflow state is unreadable or violates its invariants."""


class WorkflowPaused(AutomationError):
    """Raised at a suspension point when the workflow has been paused."""

    def __init__(self, reason: str = "Paused by user"):
        super().__init__(reason)
        self.reason = reason


class WorkflowConflict(AutomationError):
    """A control action is not allowed in the current workflow step."""
