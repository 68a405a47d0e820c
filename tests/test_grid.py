from datetime import date

from shiftdesk.domain.models import LeaveRequest, Shift, StaffMember
from shiftdesk.services.grid import project_week

STAFF = [
    StaffMember(id="alice", name="Alice", role="cleaner"),
    StaffMember(id="bob", name="Bob", role="cleaner"),
]


def make_shift(shift_id: str, staff, day: date, start: str = "10:00", status: str = "pending",
               published: bool = True, property_name: str = "Harbour Loft") -> Shift:
    return Shift(
        id=shift_id,
        property_id="p1",
        property_name=property_name,
        staff_ids=list(staff),
        date=day,
        start_time=start,
        end_time="12:00",
        service_type="Standard Clean",
        status=status,
        is_published=published,
    )


def test_week_grid_places_shifts_by_staff_and_day():
    shifts = [
        make_shift("s2", ["alice"], date(2024, 3, 5), start="13:00"),
        make_shift("s1", ["alice", "bob"], date(2024, 3, 5), start="09:00"),
        make_shift("s3", ["bob"], date(2024, 3, 12)),
    ]
    grid = project_week(STAFF, [], shifts, date(2024, 3, 7))
    assert grid.week_start == date(2024, 3, 4)
    assert len(grid.days) == 7
    alice, bob = grid.rows
    assert [s.id for s in alice.cells[1].shifts] == ["s1", "s2"]
    assert [s.id for s in bob.cells[1].shifts] == ["s1"]
    assert all(not cell.shifts for cell in bob.cells if cell.day != date(2024, 3, 5))


def test_leave_marks_cells_and_blocks_adding():
    leave = [
        LeaveRequest("l1", "alice", date(2024, 3, 4), date(2024, 3, 5), "approved", "Vacation"),
        LeaveRequest("l2", "bob", date(2024, 3, 6), date(2024, 3, 6), "pending", "Day Off"),
        LeaveRequest("l3", "bob", date(2024, 3, 7), date(2024, 3, 7), "rejected", "Day Off"),
    ]
    grid = project_week(STAFF, leave, [], date(2024, 3, 4))
    alice, bob = grid.rows
    assert alice.cells[0].on_approved_leave and not alice.cells[0].can_add_shift
    assert alice.cells[0].leave_kind == "Vacation"
    assert not alice.cells[2].on_approved_leave
    assert bob.cells[2].on_pending_leave and bob.cells[2].can_add_shift
    assert not bob.cells[3].on_pending_leave and not bob.cells[3].on_approved_leave


def test_active_shift_flags_whole_row():
    shifts = [make_shift("s1", ["bob"], date(2024, 3, 20), status="active")]
    grid = project_week(STAFF, [], shifts, date(2024, 3, 4))
    alice, bob = grid.rows
    assert bob.active_now and all(cell.active_now for cell in bob.cells)
    assert not alice.active_now


def test_open_shifts_search_and_unpublished_flag():
    shifts = [
        make_shift("s1", [], date(2024, 3, 6), published=False),
        make_shift("s2", ["alice"], date(2024, 3, 6), property_name="Old Town Studio"),
        make_shift("s3", [], date(2024, 3, 25), published=False),
    ]
    grid = project_week(STAFF, [], shifts, date(2024, 3, 4))
    assert [s.id for s in grid.open_shifts[date(2024, 3, 6)]] == ["s1"]
    assert grid.has_unpublished is True

    filtered = project_week(STAFF, [], shifts, date(2024, 3, 4), search="old town")
    assert filtered.open_shifts == {}
    assert [s.id for s in filtered.rows[0].cells[2].shifts] == ["s2"]

    by_name = project_week(STAFF, [], shifts, date(2024, 3, 4), search="ALICE")
    assert [s.id for s in by_name.rows[0].cells[2].shifts] == ["s2"]
