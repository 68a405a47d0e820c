from datetime import date, datetime

import pytest

from shiftdesk.domain.errors import ConflictError, PreconditionError, ValidationError
from shiftdesk.domain.models import Actor, LeaveRequest
from shiftdesk.services import events as ev

MANAGER = Actor(id="mgr-1", name="Maria")
DAY = date(2024, 3, 5)


def make_completed(store, staff, service_type="Standard Clean", property_id="p1", start="10:00", end="13:00",
                   day="2024-03-05", finished_at=1_000):
    shift = store.create(
        {
            "property_id": property_id,
            "date": day,
            "service_type": service_type,
            "staff_ids": list(staff),
            "start_time": start,
            "end_time": end,
        }
    ).shift
    store.mark_active(shift.id, finished_at - 1)
    return store.mark_completed(shift.id, finished_at)


def make_inspected(store):
    cleaning = make_completed(store, ["alice"], finished_at=1_000)
    inspection = make_completed(store, ["sara"], service_type="TO CHECK APARTMENT", start="14:00", end="15:00",
                                finished_at=2_000)
    return cleaning, inspection


def test_rejecting_inspection_cascades_to_cleaning(store, audit):
    cleaning, inspection = make_inspected(store)
    outcome = audit.reject(inspection.id, MANAGER, "Bathroom not cleaned")
    assert outcome.shift.approval_status == "rejected"
    assert outcome.cascaded_to == cleaning.id
    cascaded = store.get(cleaning.id)
    assert cascaded.approval_status == "rejected"
    assert cascaded.approval_comment == "Bathroom not cleaned"
    assert cascaded.was_rejected is True
    assert cascaded.decided_by == "Maria"
    assert {shift.id for shift in outcome.updated} == {inspection.id, cleaning.id}


def test_report_and_fix_after_rejected_inspection(store, audit, received):
    cleaning, inspection = make_inspected(store)
    audit.reject(inspection.id, MANAGER, "Bathroom not cleaned")
    outcome = audit.report_and_fix(inspection.id, MANAGER, "Bathroom not cleaned")
    [fix] = outcome.created
    assert fix.service_type == "TO FIX"
    assert fix.staff_ids == ["alice"]
    assert fix.is_published is True
    assert fix.fix_payment == 0.0
    assert fix.remedial_for == cleaning.id
    assert "Bathroom not cleaned" in fix.notes
    assert store.get(cleaning.id).correction_status == "fixing"
    assert received[-1].message == ev.REMEDIAL_DISPATCHED


def test_report_and_fix_rejects_pending_shift_first(store, audit):
    cleaning = make_completed(store, ["alice"])
    outcome = audit.report_and_fix(cleaning.id, MANAGER, "Streaks on the windows", date="2024-03-06")
    stored = store.get(cleaning.id)
    assert stored.approval_status == "rejected"
    assert stored.correction_status == "fixing"
    [fix] = outcome.created
    assert fix.date == date(2024, 3, 6)
    assert fix.staff_ids == ["alice"]


def test_same_team_fix_skips_double_booking(store, audit):
    cleaning = make_completed(store, ["alice"])
    outcome = audit.report_and_fix(cleaning.id, MANAGER, "Dust under beds", start_time="11:00", end_time="12:00")
    assert outcome.created[0].start_time == "11:00"


def test_new_team_fix_is_paid_and_conflict_checked(store, audit, directory):
    cleaning = make_completed(store, ["alice"])
    outcome = audit.report_and_fix(cleaning.id, MANAGER, "Dust", staff_ids=["bob"], fix_payment=25.0,
                                   date="2024-03-07")
    assert outcome.created[0].staff_ids == ["bob"]
    assert outcome.created[0].fix_payment == 25.0

    other = make_completed(store, ["carla"], property_id="p2", day="2024-03-06")
    with pytest.raises(ConflictError):
        audit.report_and_fix(other.id, MANAGER, "Dust", staff_ids=["alice"], date="2024-03-05",
                             start_time="12:00", end_time="13:00")


def test_report_and_fix_is_atomic(store, audit, directory):
    cleaning = make_completed(store, ["alice"])
    directory.leave.append(LeaveRequest("l1", "bob", date(2024, 3, 8), date(2024, 3, 8), "approved", "Vacation"))
    before = len(store)
    with pytest.raises(ConflictError):
        audit.report_and_fix(cleaning.id, MANAGER, "Dust", staff_ids=["bob"], date="2024-03-08")
    stored = store.get(cleaning.id)
    assert stored.approval_status == "pending"
    assert stored.correction_status is None
    assert len(store) == before


def test_inspection_without_cleaning_dispatches_unstaffed_fix(store, audit):
    inspection = make_completed(store, ["sara"], service_type="TO CHECK APARTMENT", property_id="p2")
    outcome = audit.report_and_fix(inspection.id, MANAGER, "Broken lamp")
    assert outcome.cascaded_to is None
    [fix] = outcome.created
    assert fix.staff_ids == []
    assert fix.remedial_for == inspection.id


def test_approval_uses_default_comment(store, audit, received):
    cleaning = make_completed(store, ["alice"])
    outcome = audit.approve(cleaning.id, MANAGER)
    assert outcome.shift.approval_status == "approved"
    assert outcome.shift.approval_comment == "Quality Verified."
    assert outcome.shift.decided_by_id == "mgr-1"
    assert received[-1].message == ev.WORK_AUTHORIZED


def test_approving_inspection_cascades(store, audit):
    cleaning, inspection = make_inspected(store)
    outcome = audit.approve(inspection.id, MANAGER, "Spotless")
    assert outcome.cascaded_to == cleaning.id
    assert store.get(cleaning.id).approval_status == "approved"
    assert store.get(cleaning.id).approval_comment == "Spotless"


def test_cascade_picks_latest_cleaning_of_same_property(store, audit):
    older = make_completed(store, ["alice"], start="08:00", end="09:00", finished_at=1_000)
    newer = make_completed(store, ["bob"], start="09:00", end="10:00", finished_at=3_000)
    elsewhere = make_completed(store, ["carla"], property_id="p2", finished_at=9_000)
    inspection = make_completed(store, ["sara"], service_type="TO CHECK APARTMENT", start="14:00", end="15:00",
                                finished_at=10_000)
    outcome = audit.reject(inspection.id, MANAGER, "Fridge not emptied")
    assert outcome.cascaded_to == newer.id
    assert store.get(older.id).approval_status == "pending"
    assert store.get(elsewhere.id).approval_status == "pending"


def test_reject_requires_reason(store, audit):
    cleaning = make_completed(store, ["alice"])
    with pytest.raises(PreconditionError):
        audit.reject(cleaning.id, MANAGER, "   ")
    assert store.get(cleaning.id).approval_status == "pending"


def test_only_completed_undecided_shifts_are_audited(store, audit):
    pending = store.create({"property_id": "p1", "date": DAY, "service_type": "Standard Clean", "staff_ids": ["alice"]}).shift
    with pytest.raises(PreconditionError):
        audit.approve(pending.id, MANAGER)
    cleaning = make_completed(store, ["alice"], day="2024-03-06")
    audit.approve(cleaning.id, MANAGER)
    with pytest.raises(PreconditionError):
        audit.reject(cleaning.id, MANAGER, "Changed my mind")


def test_approval_applies_time_corrections(store, audit):
    cleaning = make_completed(store, ["alice"])
    outcome = audit.approve(cleaning.id, MANAGER, actual_start_time="09:15", actual_end_time=5_000)
    started = datetime.fromtimestamp(outcome.shift.actual_start_time / 1000)
    assert started == datetime(2024, 3, 5, 9, 15)
    assert outcome.shift.actual_end_time == 5_000


def test_approving_fix_marks_original_corrected(store, audit):
    cleaning = make_completed(store, ["alice"])
    fix = audit.report_and_fix(cleaning.id, MANAGER, "Dust", date="2024-03-06").created[0]
    store.mark_active(fix.id, 4_000)
    store.mark_completed(fix.id, 5_000)
    outcome = audit.approve(fix.id, MANAGER)
    assert store.get(cleaning.id).correction_status == "corrected"
    assert cleaning.id in {shift.id for shift in outcome.updated}


def test_escalation_dispatches_published_inspection(store, audit, received):
    cleaning = make_completed(store, ["alice"])
    outcome = audit.escalate_to_supervisor(cleaning.id, MANAGER, date="2024-03-06", inspector_ids=["sara"])
    [inspection] = outcome.created
    assert inspection.service_type == "TO CHECK APARTMENT"
    assert inspection.staff_ids == ["sara"]
    assert inspection.is_published is True
    assert inspection.inspects == cleaning.id
    assert store.get(cleaning.id).approval_status == "pending"
    assert received[-1].message == ev.SUPERVISOR_DISPATCHED


def test_escalation_requires_supervisors(store, audit):
    cleaning = make_completed(store, ["alice"])
    with pytest.raises(ValidationError):
        audit.escalate_to_supervisor(cleaning.id, MANAGER, date="2024-03-06", inspector_ids=["bob"])


def test_follow_up_fix_goes_to_rejected_cleaning_not_completed_fix(store, audit):
    cleaning, inspection = make_inspected(store)
    audit.reject(inspection.id, MANAGER, "Bathroom not cleaned")
    first = audit.report_and_fix(inspection.id, MANAGER).created[0]
    store.mark_active(first.id, 2_999)
    store.mark_completed(first.id, 3_000)

    outcome = audit.report_and_fix(inspection.id, MANAGER)
    [second] = outcome.created
    assert outcome.cascaded_to == cleaning.id
    assert second.remedial_for == cleaning.id
    assert second.staff_ids == ["alice"]
    assert store.get(first.id).correction_status is None
    assert store.get(cleaning.id).correction_status == "fixing"


def test_follow_up_fix_refused_once_cleaning_is_no_longer_rejected(store, audit):
    cleaning, inspection = make_inspected(store)
    audit.reject(inspection.id, MANAGER, "Bathroom not cleaned")
    recheck = make_completed(store, ["sara"], service_type="TO CHECK APARTMENT", start="16:00", end="17:00",
                             finished_at=3_000)
    audit.approve(recheck.id, MANAGER, "Fine after all")
    before = len(store)
    with pytest.raises(PreconditionError):
        audit.report_and_fix(inspection.id, MANAGER)
    assert len(store) == before
    assert store.get(cleaning.id).approval_status == "approved"


def test_approving_inspection_closes_cleaning_under_repair(store, audit):
    cleaning = make_completed(store, ["alice"])
    audit.report_and_fix(cleaning.id, MANAGER, "Dust", date="2024-03-06")
    inspection = make_completed(store, ["sara"], service_type="TO CHECK APARTMENT", start="14:00", end="15:00",
                                finished_at=2_000)
    outcome = audit.approve(inspection.id, MANAGER, "Looks good now")
    assert outcome.cascaded_to == cleaning.id
    stored = store.get(cleaning.id)
    assert stored.approval_status == "approved"
    assert stored.correction_status == "corrected"


def test_same_team_fix_can_be_edited(store, audit):
    cleaning = make_completed(store, ["alice"])
    fix = audit.report_and_fix(cleaning.id, MANAGER, "Dust").created[0]
    payload = {
        "property_id": "p1",
        "date": "2024-03-05",
        "service_type": "TO FIX",
        "staff_ids": ["alice"],
        "start_time": fix.start_time,
        "end_time": fix.end_time,
        "notes": "Bring the ladder",
    }
    assert store.update(fix.id, payload).shift.notes == "Bring the ladder"

    with pytest.raises(ConflictError):
        store.update(fix.id, dict(payload, staff_ids=["alice", "bob"]))


def test_float_epoch_corrections_are_stored_as_milliseconds(store, audit):
    cleaning = make_completed(store, ["alice"])
    outcome = audit.approve(cleaning.id, MANAGER, actual_end_time=5_000.0)
    assert outcome.shift.actual_end_time == 5_000
    assert isinstance(outcome.shift.actual_end_time, int)
