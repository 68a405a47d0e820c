"""Week grid read model for the scheduling calendar."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

from ..domain.models import LEAVE_APPROVED, LEAVE_PENDING, STATUS_ACTIVE, LeaveRequest, Shift, StaffMember
from ..rules.timeutil import week_dates


@dataclass(slots=True)
class GridCell:
    day: date
    shifts: List[Shift]
    on_approved_leave: bool
    on_pending_leave: bool
    active_now: bool
    leave_kind: Optional[str] = None

    @property
    def can_add_shift(self) -> bool:
        return not self.on_approved_leave


@dataclass(slots=True)
class StaffRow:
    staff: StaffMember
    active_now: bool
    cells: List[GridCell]


@dataclass(slots=True)
class WeekGrid:
    week_start: date
    days: List[date]
    rows: List[StaffRow]
    open_shifts: Dict[date, List[Shift]] = field(default_factory=dict)
    has_unpublished: bool = False


def _matches(shift: Shift, query: str, names: Dict[str, str]) -> bool:
    if not query:
        return True
    if query in shift.property_name.lower():
        return True
    return any(query in names.get(staff_id, "").lower() for staff_id in shift.staff_ids)


def _leave_on(requests: Iterable[LeaveRequest], day: date, status: str) -> Optional[LeaveRequest]:
    for request in requests:
        if request.status == status and request.covers(day):
            return request
    return None


def project_week(
    staff: Sequence[StaffMember],
    leave: Iterable[LeaveRequest],
    shifts: Iterable[Shift],
    week_start: date,
    *,
    search: str = "",
) -> WeekGrid:
    """Assemble the staff × day grid for the week containing *week_start*.

    ``active_now`` is per person, not per day: anyone with a shift in
    progress anywhere is flagged in every cell of their row.
    """

    days = week_dates(week_start)
    first, last = days[0], days[-1]
    all_shifts = list(shifts)
    names = {member.id: member.name for member in staff}
    query = search.strip().lower()
    week_shifts = [
        shift for shift in all_shifts if first <= shift.date <= last and _matches(shift, query, names)
    ]
    leave_by_user: Dict[str, List[LeaveRequest]] = {}
    for request in leave:
        leave_by_user.setdefault(request.user_id, []).append(request)

    rows: List[StaffRow] = []
    for member in staff:
        active_now = any(member.id in shift.staff_ids and shift.status == STATUS_ACTIVE for shift in all_shifts)
        requests = leave_by_user.get(member.id, [])
        cells = []
        for day in days:
            approved = _leave_on(requests, day, LEAVE_APPROVED)
            pending = _leave_on(requests, day, LEAVE_PENDING)
            cells.append(
                GridCell(
                    day=day,
                    shifts=sorted(
                        (s for s in week_shifts if s.date == day and member.id in s.staff_ids),
                        key=lambda s: (s.start_time, s.id),
                    ),
                    on_approved_leave=approved is not None,
                    on_pending_leave=pending is not None,
                    active_now=active_now,
                    leave_kind=(approved or pending).kind if (approved or pending) else None,
                )
            )
        rows.append(StaffRow(staff=member, active_now=active_now, cells=cells))

    open_shifts = {day: [s for s in week_shifts if s.date == day and not s.staff_ids] for day in days}
    return WeekGrid(
        week_start=first,
        days=days,
        rows=rows,
        open_shifts={day: items for day, items in open_shifts.items() if items},
        has_unpublished=any(not s.is_published for s in all_shifts if first <= s.date <= last),
    )
