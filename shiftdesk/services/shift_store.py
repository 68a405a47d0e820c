"""Authoritative shift collection and its lifecycle state machine."""
from __future__ import annotations

import copy
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from ..config import CONFIG
from ..domain.errors import PreconditionError, ValidationError
from ..domain.models import (
    APPROVAL_PENDING,
    SCOPE_DAY,
    SCOPE_WEEK,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_PENDING,
    Actor,
    Shift,
    ShiftInput,
)
from ..domain.service_types import ServiceTypeRegistry, is_inspection, is_remedial, normalize_service_type
from ..domain.shift_book import ShiftBook
from ..rules import publishing
from ..rules.conflicts import Candidate, Conflict, check_conflicts, same_team
from ..rules.timeutil import normalize_time, to_canonical_date, week_start
from . import events as ev
from .directory import Directory

logger = logging.getLogger(__name__)


@dataclass
class ShiftChange:
    """Result of a create/update: the saved shift plus its side effects."""

    shift: Shift
    published: List[Shift] = field(default_factory=list)
    advisories: List[Conflict] = field(default_factory=list)
    registered_service_type: bool = False


def coerce_input(data: ShiftInput | Mapping[str, Any]) -> ShiftInput:
    if isinstance(data, ShiftInput):
        return data
    return ShiftInput(
        property_id=data.get("property_id"),
        date=data.get("date"),
        service_type=data.get("service_type"),
        staff_ids=[str(staff_id) for staff_id in data.get("staff_ids") or []],
        start_time=data.get("start_time"),
        end_time=data.get("end_time"),
        notes=data.get("notes") or "",
        fix_payment=data.get("fix_payment"),
        exclude_laundry=bool(data.get("exclude_laundry", False)),
        approval_comment=data.get("approval_comment"),
        inspection_photos=list(data.get("inspection_photos") or []),
        original_cleaning_photos=list(data.get("original_cleaning_photos") or []),
    )


def _unique(values: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in values:
        if value:
            seen.setdefault(value, None)
    return list(seen)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class ShiftStore:
    """In-memory source of truth for shifts.

    Mutations are serialized by one re-entrant lock and staged on a working
    copy inside :meth:`transaction`, so a multi-step change is committed
    whole or not at all. Reads hand out copies of committed state.
    """

    def __init__(
        self,
        shifts: Iterable[Shift] | None = None,
        *,
        directory: Optional[Directory] = None,
        service_types: Optional[ServiceTypeRegistry] = None,
        events: Optional[ev.EventBus] = None,
        settings: Optional[Mapping[str, Any]] = None,
        clock: Callable[[], date] = date.today,
        id_factory: Callable[[str], str] = _new_id,
    ) -> None:
        self.settings: Dict[str, Any] = {**CONFIG, **(settings or {})}
        self.directory = directory or Directory()
        self.service_types = service_types or ServiceTypeRegistry(self.settings["service_types"])
        self.events = events or ev.EventBus()
        self.auto_publish = frozenset(normalize_service_type(t) for t in self.settings["auto_publish_service_types"])
        self._clock = clock
        self._id_factory = id_factory
        self._book = ShiftBook(shifts)
        self._lock = threading.RLock()
        self._staged: Optional[ShiftBook] = None
        self._owner: Optional[int] = None
        self._queued: List[ev.ShiftEvent] = []

    # -- transactions -------------------------------------------------------------
    @contextmanager
    def transaction(self) -> Iterator[ShiftBook]:
        """Stage mutations on a working copy; commit on clean exit.

        Nested calls join the outer transaction. Events queued with
        :meth:`notify` are delivered only after the outermost commit.
        """

        with self._lock:
            if self._staged is not None:
                yield self._staged
                return
            self._staged = self._book.copy()
            self._owner = threading.get_ident()
            self._queued = []
            try:
                yield self._staged
            except BaseException:
                self._staged, self._owner, self._queued = None, None, []
                raise
            self._book = self._staged
            delivered = self._queued
            self._staged, self._owner, self._queued = None, None, []
        for event in delivered:
            self.events.emit(event)

    def notify(self, message: str, shifts: Iterable[Shift] = (), actor: Optional[Actor] = None, level: str = "success") -> None:
        event = ev.ShiftEvent(
            message=message,
            level=level,
            shift_ids=tuple(shift.id for shift in shifts),
            actor_id=actor.id if actor else None,
        )
        if self._staged is not None and self._owner == threading.get_ident():
            self._queued.append(event)
        else:
            self.events.emit(event)

    def _view(self) -> ShiftBook:
        if self._staged is not None and self._owner == threading.get_ident():
            return self._staged
        return self._book

    def new_id(self, prefix: str = "s") -> str:
        return self._id_factory(prefix)

    # -- queries ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._view())

    def __contains__(self, shift_id: object) -> bool:
        return shift_id in self._view()

    def get(self, shift_id: str) -> Shift:
        with self._lock:
            return copy.deepcopy(self._view().require(shift_id))

    def list_shifts(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        *,
        staff_id: Optional[str] = None,
        property_id: Optional[str] = None,
    ) -> List[Shift]:
        with self._lock:
            rows = self._view().ordered()
            if start is not None:
                rows = [shift for shift in rows if shift.date >= start]
            if end is not None:
                rows = [shift for shift in rows if shift.date <= end]
            if staff_id is not None:
                rows = [shift for shift in rows if staff_id in shift.staff_ids]
            if property_id is not None:
                rows = [shift for shift in rows if shift.property_id == property_id]
            return copy.deepcopy(rows)

    def latest_completed_cleaning(self, property_id: str) -> Optional[Shift]:
        with self._lock:
            return copy.deepcopy(self._view().latest_completed_cleaning(property_id))

    def snapshot(self) -> List[Shift]:
        with self._lock:
            return copy.deepcopy(self._view().ordered())

    def has_unpublished_shifts(self, start: date, end: date) -> bool:
        with self._lock:
            return any(not shift.is_published for shift in self._view().between(start, end))

    # -- validation helpers -------------------------------------------------------
    def today(self) -> date:
        return self._clock()

    def canonical_date(self, value: Any) -> date:
        return to_canonical_date(value, today=self._clock(), strict=bool(self.settings["strict_dates"]))

    def _validate(self, data: ShiftInput) -> tuple[date, str, str, str, List[str]]:
        missing = [
            name
            for name, value in (("property_id", data.property_id), ("date", data.date), ("service_type", data.service_type))
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        day = self.canonical_date(data.date)
        start = normalize_time(data.start_time, self.settings["default_start_time"])
        end = normalize_time(data.end_time, self.settings["default_end_time"])
        service_type = normalize_service_type(data.service_type)
        staff_ids = _unique(data.staff_ids)
        self.directory.validate_assignable(staff_ids)
        return day, start, end, service_type, staff_ids

    def _check(self, book: ShiftBook, staff_ids: List[str], day: date, start: str, end: str,
               exclude: Optional[str], check_double_booking: bool) -> List[Conflict]:
        result = check_conflicts(
            Candidate(staff_ids=staff_ids, date=day, start_time=start, end_time=end, exclude_shift_id=exclude),
            book.values(),
            self.directory.leave,
            check_double_booking=check_double_booking,
        )
        result.raise_for_conflicts()
        return result.advisories

    @staticmethod
    def _redeploys_crew(book: ShiftBook, shift: Shift, staff_ids: List[str]) -> bool:
        # a fix worked by the crew of the cleaning it remediates skips double booking
        if not is_remedial(shift.service_type) or shift.remedial_for not in book:
            return False
        original = book[shift.remedial_for]
        return not is_inspection(original.service_type) and same_team(staff_ids, original.staff_ids)

    def _publish_between(self, book: ShiftBook, start: date, end: date) -> List[Shift]:
        published = []
        for shift in book.between(start, end):
            if not shift.is_published:
                shift.is_published = True
                published.append(shift)
        return published

    def _announce_save(self, scope: Optional[str], shift: Shift, published: List[Shift], actor: Optional[Actor], created: bool) -> None:
        if scope == SCOPE_WEEK:
            message = ev.WEEK_PUBLISHED
        elif scope == SCOPE_DAY:
            message = ev.DAY_PUBLISHED
        elif shift.is_published:
            message = ev.SHIFT_PUBLISHED if created or published else ev.SHIFT_UPDATED
        else:
            message = ev.DRAFT_SAVED
        self.notify(message, [shift, *published], actor, level="success" if shift.is_published else "info")

    # -- mutations ----------------------------------------------------------------
    def create(
        self,
        data: ShiftInput | Mapping[str, Any],
        actor: Optional[Actor] = None,
        publish_scope: object = None,
        *,
        check_double_booking: bool = True,
        id_prefix: str = "s",
        **extra: Any,
    ) -> ShiftChange:
        """Validate, conflict-check and add a new pending shift.

        ``check_double_booking=False`` is reserved for remedial shifts that
        redeploy the team of the shift they fix. *extra* sets additional
        :class:`Shift` fields such as ``remedial_for``.
        """

        data = coerce_input(data)
        scope = publishing.normalize_scope(publish_scope)
        day, start, end, service_type, staff_ids = self._validate(data)
        if not staff_ids and not (is_inspection(service_type) or is_remedial(service_type)):
            raise ValidationError(f"A {service_type} shift needs at least one staff member")
        with self.transaction() as book:
            advisories = self._check(book, staff_ids, day, start, end, None, check_double_booking)
            registered = self.service_types.register(service_type)
            shift = Shift(
                id=self.new_id(id_prefix),
                property_id=str(data.property_id),
                property_name=self.directory.property_name(str(data.property_id)),
                staff_ids=staff_ids,
                date=day,
                start_time=start,
                end_time=end,
                service_type=service_type,
                is_published=publishing.resolve_is_published(scope, service_type, None, self.auto_publish),
                approval_comment=data.approval_comment,
                fix_payment=data.fix_payment,
                notes=data.notes,
                exclude_laundry=data.exclude_laundry,
                inspection_photos=list(data.inspection_photos),
                original_cleaning_photos=list(data.original_cleaning_photos),
                **extra,
            )
            book.add(shift)
            published = self._publish_scope(book, scope, day, shift)
            self._announce_save(scope, shift, published, actor, created=True)
            logger.info("Shift %s created for %s on %s (published=%s)", shift.id, shift.property_id, day, shift.is_published)
            return ShiftChange(
                shift=copy.deepcopy(shift),
                published=copy.deepcopy(published),
                advisories=advisories,
                registered_service_type=registered,
            )

    def update(
        self,
        shift_id: str,
        data: ShiftInput | Mapping[str, Any],
        actor: Optional[Actor] = None,
        publish_scope: object = None,
        *,
        confirm_unassign: bool = False,
    ) -> ShiftChange:
        """Replace the scheduling fields of a shift.

        Lifecycle status, verdict, execution timestamps and evidence are kept.
        Removing every staff member from a staffed shift requires
        ``confirm_unassign``.
        """

        data = coerce_input(data)
        scope = publishing.normalize_scope(publish_scope)
        day, start, end, service_type, staff_ids = self._validate(data)
        with self.transaction() as book:
            shift = book.require(shift_id)
            if shift.staff_ids and not staff_ids and not confirm_unassign:
                raise PreconditionError(f"Removing all staff from shift {shift_id} needs confirmation")
            exempt = self._redeploys_crew(book, shift, staff_ids)
            advisories = self._check(book, staff_ids, day, start, end, shift_id, not exempt)
            registered = self.service_types.register(service_type)
            shift.property_id = str(data.property_id)
            shift.property_name = self.directory.property_name(shift.property_id)
            shift.staff_ids = staff_ids
            shift.date = day
            shift.start_time = start
            shift.end_time = end
            shift.service_type = service_type
            shift.notes = data.notes
            shift.fix_payment = data.fix_payment
            shift.exclude_laundry = data.exclude_laundry
            if data.approval_comment is not None:
                shift.approval_comment = data.approval_comment
            shift.is_published = publishing.resolve_is_published(scope, service_type, shift.is_published, self.auto_publish)
            published = self._publish_scope(book, scope, day, shift)
            self._announce_save(scope, shift, published, actor, created=False)
            logger.info("Shift %s updated", shift_id)
            return ShiftChange(
                shift=copy.deepcopy(shift),
                published=copy.deepcopy(published),
                advisories=advisories,
                registered_service_type=registered,
            )

    def _publish_scope(self, book: ShiftBook, scope: Optional[str], day: date, saved: Shift) -> List[Shift]:
        window = publishing.scope_range(scope, day)
        if window is None:
            return []
        return [shift for shift in self._publish_between(book, *window) if shift.id != saved.id]

    def delete(self, shift_id: str, actor: Optional[Actor] = None) -> Shift:
        """Hard delete. Derived remedial shifts are left for the caller to close."""

        with self.transaction() as book:
            removed = book.require(shift_id)
            del book[shift_id]
            self.notify(ev.SHIFT_REMOVED, [removed], actor, level="info")
            logger.info("Shift %s deleted", shift_id)
            return copy.deepcopy(removed)

    def mark_active(self, shift_id: str, timestamp: int) -> Shift:
        with self.transaction() as book:
            shift = book.require(shift_id)
            if shift.status != STATUS_PENDING:
                raise ValidationError(f"Shift {shift_id} cannot start from status {shift.status}")
            shift.status = STATUS_ACTIVE
            shift.actual_start_time = int(timestamp)
            self.notify(ev.SHIFT_STARTED, [shift], level="info")
            return copy.deepcopy(shift)

    def mark_completed(self, shift_id: str, timestamp: int) -> Shift:
        with self.transaction() as book:
            shift = book.require(shift_id)
            if shift.status != STATUS_ACTIVE:
                raise ValidationError(f"Shift {shift_id} cannot complete from status {shift.status}")
            shift.status = STATUS_COMPLETED
            shift.actual_end_time = int(timestamp)
            shift.approval_status = APPROVAL_PENDING
            self.notify(ev.SHIFT_COMPLETED, [shift], level="info")
            return copy.deepcopy(shift)

    # -- publishing ---------------------------------------------------------------
    def publish_range(self, start: Any, end: Any, actor: Optional[Actor] = None) -> List[Shift]:
        """Publish every draft shift dated within ``[start, end]``. Idempotent."""

        first, last = self.canonical_date(start), self.canonical_date(end)
        if last < first:
            raise ValidationError("Publish range ends before it starts")
        with self.transaction() as book:
            published = self._publish_between(book, first, last)
            if published:
                self.notify(ev.DAY_PUBLISHED if first == last else ev.WEEK_PUBLISHED, published, actor)
                logger.info("Published %d shifts between %s and %s", len(published), first, last)
            return copy.deepcopy(published)

    def publish_day(self, day: Any, actor: Optional[Actor] = None) -> List[Shift]:
        return self.publish_range(day, day, actor)

    def publish_week(self, day: Any, actor: Optional[Actor] = None) -> List[Shift]:
        start = week_start(self.canonical_date(day))
        return self.publish_range(start, start + timedelta(days=6), actor)


__all__ = ["ShiftChange", "ShiftStore", "coerce_input"]
