"""Error taxonomy for the shift engine.

All of these are recoverable: the web layer turns them into blocking
messages for the scheduler.
"""
from __future__ import annotations

from typing import Sequence


class SchedulingError(Exception):
    """Base class for every error raised by the shift engine."""

    kind = "scheduling_error"


class ValidationError(SchedulingError, ValueError):
    """Missing required data or an out-of-order state transition."""

    kind = "validation_error"


class NotFoundError(SchedulingError, LookupError):
    """Raised when a shift id is unknown to the store."""

    kind = "not_found"

    def __init__(self, shift_id: str) -> None:
        super().__init__(f"Shift {shift_id} not found")
        self.shift_id = shift_id


class PreconditionError(SchedulingError):
    """The shift is not in a state that allows the requested action."""

    kind = "precondition_failed"


class ConflictError(SchedulingError):
    """Double booking or approved-leave collision; carries every conflict found."""

    kind = "conflict"

    def __init__(self, conflicts: Sequence[object]) -> None:
        self.conflicts = list(conflicts)
        summary = "; ".join(str(conflict) for conflict in self.conflicts)
        super().__init__(f"Scheduling blocked: {summary}" if summary else "Scheduling blocked")
