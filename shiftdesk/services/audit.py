"""Post-completion quality audit: approve, reject, report & fix, escalate.

Every action runs inside a single store transaction and returns an
:class:`AuditOutcome` describing all shifts it touched, so callers can
assert on the full effect set instead of re-reading the store.

Verdicts given on an inspection shift (``TO CHECK APARTMENT``) cascade to
the most recently completed cleaning shift of the same property. When no
such shift exists the primary action still succeeds on its own.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional, Sequence, Tuple, Union

from ..domain.errors import PreconditionError, ValidationError
from ..domain.models import (
    APPROVAL_APPROVED,
    APPROVAL_PENDING,
    APPROVAL_REJECTED,
    CORRECTION_CORRECTED,
    CORRECTION_FIXING,
    STATUS_COMPLETED,
    Actor,
    Shift,
    ShiftInput,
)
from ..domain.service_types import TO_CHECK_APARTMENT, TO_FIX, is_inspection, is_remedial
from ..domain.shift_book import ShiftBook
from ..rules.conflicts import same_team
from ..rules.timeutil import timestamp_with_time
from . import events as ev
from .shift_store import ShiftStore

logger = logging.getLogger(__name__)

TimeCorrection = Union[int, float, str, None]

SUPERVISOR_ROLE = "supervisor"


@dataclass
class AuditOutcome:
    shift: Shift
    updated: List[Shift] = field(default_factory=list)
    created: List[Shift] = field(default_factory=list)
    cascaded_to: Optional[str] = None


class AuditWorkflow:
    def __init__(self, store: ShiftStore) -> None:
        self.store = store

    # -- helpers ------------------------------------------------------------------
    def _reviewable(self, book: ShiftBook, shift_id: str) -> Shift:
        shift = book.require(shift_id)
        if shift.status != STATUS_COMPLETED:
            raise PreconditionError(f"Shift {shift_id} is {shift.status}; only completed shifts can be audited")
        if shift.approval_status != APPROVAL_PENDING:
            raise PreconditionError(f"Shift {shift_id} was already {shift.approval_status}")
        return shift

    @staticmethod
    def _corrected(original: Optional[int], value: TimeCorrection, day: date) -> Optional[int]:
        if value is None or value == "":
            return original
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return int(value)
        text = str(value).strip()
        if text.isdigit():
            return int(text)
        return timestamp_with_time(original, text, day)

    def _apply_corrections(self, shift: Shift, actual_start: TimeCorrection, actual_end: TimeCorrection) -> None:
        shift.actual_start_time = self._corrected(shift.actual_start_time, actual_start, shift.date)
        shift.actual_end_time = self._corrected(shift.actual_end_time, actual_end, shift.date)

    @staticmethod
    def _record(shift: Shift, verdict: str, comment: str, actor: Actor) -> None:
        shift.approval_status = verdict
        shift.approval_comment = comment
        shift.decided_by = actor.name
        shift.decided_by_id = actor.id
        if verdict == APPROVAL_REJECTED:
            shift.was_rejected = True

    def _decide(self, book: ShiftBook, shift: Shift, verdict: str, comment: str, actor: Actor) -> Tuple[List[Shift], Optional[Shift]]:
        self._record(shift, verdict, comment, actor)
        touched = [shift]
        if not is_inspection(shift.service_type):
            return touched, None
        target = book.latest_completed_cleaning(shift.property_id)
        if target is None:
            logger.info("Inspection %s: no completed cleaning shift at %s to cascade to", shift.id, shift.property_id)
            return touched, None
        shift.cascade_target = target.id
        self._record(target, verdict, comment, actor)
        touched.append(target)
        return touched, target

    @staticmethod
    def _close_remediation(book: ShiftBook, shift: Shift, touched: List[Shift]) -> None:
        """Mark work corrected once an approval covers it or the fix made for it."""
        if shift.correction_status == CORRECTION_FIXING:
            shift.correction_status = CORRECTION_CORRECTED
        if is_remedial(shift.service_type) and shift.remedial_for in book:
            original = book[shift.remedial_for]
            if original.correction_status == CORRECTION_FIXING:
                original.correction_status = CORRECTION_CORRECTED
                if all(item is not original for item in touched):
                    touched.append(original)

    @staticmethod
    def _recorded_target(book: ShiftBook, inspection: Shift) -> Optional[Shift]:
        if inspection.cascade_target is None:
            return None
        target = book.get(inspection.cascade_target)
        if target is not None and target.approval_status != APPROVAL_REJECTED:
            raise PreconditionError(
                f"Shift {target.id} rejected through inspection {inspection.id} is now {target.approval_status}"
            )
        return target

    def _reject(self, book: ShiftBook, shift_id: str, actor: Actor, reason: Optional[str],
                actual_start: TimeCorrection, actual_end: TimeCorrection) -> Tuple[Shift, List[Shift], Optional[Shift]]:
        shift = self._reviewable(book, shift_id)
        comment = (reason or "").strip() or (shift.approval_comment or "").strip()
        if not comment:
            raise PreconditionError("A reason is mandatory for rejection")
        self._apply_corrections(shift, actual_start, actual_end)
        touched, target = self._decide(book, shift, APPROVAL_REJECTED, comment, actor)
        return shift, touched, target

    @staticmethod
    def _outcome(shift: Shift, touched: List[Shift], created: List[Shift], target: Optional[Shift]) -> AuditOutcome:
        return AuditOutcome(
            shift=copy.deepcopy(shift),
            updated=copy.deepcopy(touched),
            created=copy.deepcopy(created),
            cascaded_to=target.id if target else None,
        )

    # -- actions ------------------------------------------------------------------
    def approve(
        self,
        shift_id: str,
        actor: Actor,
        comment: Optional[str] = None,
        actual_start_time: TimeCorrection = None,
        actual_end_time: TimeCorrection = None,
    ) -> AuditOutcome:
        with self.store.transaction() as book:
            shift = self._reviewable(book, shift_id)
            self._apply_corrections(shift, actual_start_time, actual_end_time)
            final = (comment or "").strip() or shift.approval_comment or self.store.settings["approval_comment"]
            touched, target = self._decide(book, shift, APPROVAL_APPROVED, final, actor)
            for decided in list(touched):
                self._close_remediation(book, decided, touched)
            self.store.notify(ev.WORK_AUTHORIZED, touched, actor)
            logger.info("Shift %s approved by %s", shift_id, actor.name)
            return self._outcome(shift, touched, [], target)

    def reject(
        self,
        shift_id: str,
        actor: Actor,
        reason: Optional[str] = None,
        actual_start_time: TimeCorrection = None,
        actual_end_time: TimeCorrection = None,
    ) -> AuditOutcome:
        with self.store.transaction() as book:
            shift, touched, target = self._reject(book, shift_id, actor, reason, actual_start_time, actual_end_time)
            self.store.notify(ev.WORK_REJECTED, touched, actor)
            logger.info("Shift %s rejected by %s: %s", shift_id, actor.name, shift.approval_comment)
            return self._outcome(shift, touched, [], target)

    def report_and_fix(
        self,
        shift_id: str,
        actor: Actor,
        reason: Optional[str] = None,
        *,
        date: Any = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        staff_ids: Optional[Sequence[str]] = None,
        fix_payment: Optional[float] = None,
    ) -> AuditOutcome:
        """Reject the shift and dispatch a ``TO FIX`` shift in one step.

        The remedial team defaults to the crew that did the rejected cleaning.
        Reusing that exact crew skips the double-booking check and carries no
        fix payment; a different crew goes through the full conflict check
        and may be paid *fix_payment*.
        """

        with self.store.transaction() as book:
            existing = book.require(shift_id)
            if existing.status == STATUS_COMPLETED and existing.approval_status == APPROVAL_REJECTED:
                # already rejected: only the remedial dispatch is left to do
                reviewed, touched = existing, []
                target = self._recorded_target(book, existing) if is_inspection(existing.service_type) else None
            else:
                reviewed, touched, target = self._reject(book, shift_id, actor, reason, None, None)
            if is_inspection(reviewed.service_type):
                cleaning = target
                team = list(cleaning.staff_ids) if cleaning else []
            else:
                cleaning = reviewed
                team = list(reviewed.staff_ids)
            chosen = list(staff_ids) if staff_ids is not None else team
            reuse_crew = same_team(chosen, team)

            data = ShiftInput(
                property_id=reviewed.property_id,
                date=date or reviewed.date,
                service_type=TO_FIX,
                staff_ids=chosen,
                start_time=start_time,
                end_time=end_time,
                notes=f"[REMEDIAL] Fix required for {reviewed.property_name}. Findings: {reviewed.approval_comment}",
                fix_payment=0.0 if reuse_crew else fix_payment,
                exclude_laundry=reviewed.exclude_laundry,
                approval_comment=reviewed.approval_comment,
                inspection_photos=list(reviewed.inspection_photos),
                original_cleaning_photos=list(cleaning.photos) if cleaning else [],
            )
            change = self.store.create(
                data,
                actor,
                check_double_booking=not reuse_crew,
                id_prefix="fix",
                remedial_for=cleaning.id if cleaning else reviewed.id,
            )
            fix = book.require(change.shift.id)
            fix.is_published = True

            if cleaning is not None:
                cleaning.correction_status = CORRECTION_FIXING
                if all(item is not cleaning for item in touched):
                    touched.append(cleaning)
            self.store.notify(ev.REMEDIAL_DISPATCHED, [*touched, fix], actor)
            logger.info("Shift %s rejected; remedial shift %s dispatched to %s", shift_id, fix.id, ", ".join(chosen) or "nobody")
            return self._outcome(reviewed, touched, [fix], target)

    def escalate_to_supervisor(
        self,
        shift_id: str,
        actor: Actor,
        *,
        date: Any = None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        inspector_ids: Optional[Sequence[str]] = None,
    ) -> AuditOutcome:
        """Ask for an independent inspection before deciding. The verdict is left pending."""

        inspectors = list(inspector_ids or [])
        for staff_id in inspectors:
            member = self.store.directory.staff_member(staff_id)
            if member is not None and member.role.lower() != SUPERVISOR_ROLE:
                raise ValidationError(f"{member.name} is not a supervisor")

        with self.store.transaction() as book:
            reviewed = self._reviewable(book, shift_id)
            data = ShiftInput(
                property_id=reviewed.property_id,
                date=date or reviewed.date,
                service_type=TO_CHECK_APARTMENT,
                staff_ids=inspectors,
                start_time=start_time,
                end_time=end_time,
                notes=f"[SUPERVISOR AUDIT] Independent check required for {reviewed.property_name}.",
                exclude_laundry=reviewed.exclude_laundry,
            )
            change = self.store.create(data, actor, id_prefix="audit", inspects=reviewed.id)
            inspection = book.require(change.shift.id)
            inspection.is_published = True
            self.store.notify(ev.SUPERVISOR_DISPATCHED, [inspection], actor)
            logger.info("Shift %s escalated; inspection %s created", shift_id, inspection.id)
            return self._outcome(reviewed, [], [inspection], None)


__all__ = ["AuditOutcome", "AuditWorkflow"]
