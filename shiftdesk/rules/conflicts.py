"""Conflict detection for candidate shift assignments."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Sequence

from ..domain.errors import ConflictError
from ..domain.models import LEAVE_APPROVED, LEAVE_PENDING, LeaveRequest, Shift
from .timeutil import interval_minutes, overlaps

DOUBLE_BOOKED = "staff_double_booked"
LEAVE_CONFLICT = "leave_conflict"
PENDING_LEAVE = "pending_leave"


@dataclass(frozen=True)
class Candidate:
    staff_ids: Sequence[str]
    date: date
    start_time: str
    end_time: str
    exclude_shift_id: Optional[str] = None


@dataclass(frozen=True)
class Conflict:
    kind: str
    staff_id: str
    shift_id: Optional[str] = None
    leave_id: Optional[str] = None
    detail: str = ""

    def __str__(self) -> str:
        return self.detail or f"{self.kind}: {self.staff_id}"

    def as_dict(self) -> dict:
        return {
            "kind": self.kind,
            "staff_id": self.staff_id,
            "shift_id": self.shift_id,
            "leave_id": self.leave_id,
            "detail": self.detail,
        }


@dataclass
class ConflictResult:
    conflicts: List[Conflict] = field(default_factory=list)
    advisories: List[Conflict] = field(default_factory=list)

    @property
    def fatal(self) -> bool:
        # double booking and approved leave both refuse the save
        return bool(self.conflicts)

    def of_kind(self, kind: str) -> List[Conflict]:
        return [c for c in self.conflicts + self.advisories if c.kind == kind]

    def raise_for_conflicts(self) -> None:
        if self.fatal:
            raise ConflictError(self.conflicts)


def _double_bookings(candidate: Candidate, shifts: Iterable[Shift]) -> List[Conflict]:
    found: List[Conflict] = []
    wanted = set(candidate.staff_ids)
    if not wanted:
        return found
    start, end = interval_minutes(candidate.start_time, candidate.end_time)
    for shift in shifts:
        if shift.id == candidate.exclude_shift_id or shift.date != candidate.date:
            continue
        shared = [staff_id for staff_id in shift.staff_ids if staff_id in wanted]
        if not shared:
            continue
        other_start, other_end = interval_minutes(shift.start_time, shift.end_time)
        if not overlaps(start, end, other_start, other_end):
            continue
        for staff_id in shared:
            found.append(
                Conflict(
                    kind=DOUBLE_BOOKED,
                    staff_id=staff_id,
                    shift_id=shift.id,
                    detail=(
                        f"{staff_id} already works {shift.property_name} "
                        f"{shift.start_time}-{shift.end_time} (shift {shift.id})"
                    ),
                )
            )
    return found


def _leave_hits(candidate: Candidate, leave: Iterable[LeaveRequest]) -> tuple[List[Conflict], List[Conflict]]:
    blocking: List[Conflict] = []
    advisory: List[Conflict] = []
    requests = [request for request in leave if request.covers(candidate.date)]
    for staff_id in candidate.staff_ids:
        for request in requests:
            if request.user_id != staff_id:
                continue
            if request.status == LEAVE_APPROVED:
                blocking.append(
                    Conflict(
                        kind=LEAVE_CONFLICT,
                        staff_id=staff_id,
                        leave_id=request.id,
                        detail=f"{staff_id} is on approved {request.kind.upper()} on {candidate.date.isoformat()}",
                    )
                )
            elif request.status == LEAVE_PENDING:
                advisory.append(
                    Conflict(
                        kind=PENDING_LEAVE,
                        staff_id=staff_id,
                        leave_id=request.id,
                        detail=f"{staff_id} has a pending {request.kind} request on {candidate.date.isoformat()}",
                    )
                )
    return blocking, advisory


def check_conflicts(
    candidate: Candidate,
    shifts: Iterable[Shift],
    leave: Iterable[LeaveRequest],
    *,
    check_double_booking: bool = True,
) -> ConflictResult:
    """Collect every conflict the candidate assignment would create.

    Pending leave is reported as an advisory and never blocks.
    """

    result = ConflictResult()
    if check_double_booking:
        result.conflicts.extend(_double_bookings(candidate, shifts))
    blocking, advisory = _leave_hits(candidate, leave)
    result.conflicts.extend(blocking)
    result.advisories.extend(advisory)
    return result


def same_team(left: Sequence[str], right: Sequence[str]) -> bool:
    """True when both assignments name the same staff, in any order."""
    return sorted(left) == sorted(right)


__all__ = [
    "Candidate",
    "Conflict",
    "ConflictResult",
    "DOUBLE_BOOKED",
    "LEAVE_CONFLICT",
    "PENDING_LEAVE",
    "check_conflicts",
    "same_team",
]
