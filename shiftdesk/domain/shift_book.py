"""Shift collection used by the store, the audit workflow and the grid."""
from __future__ import annotations

import copy
from datetime import date
from typing import Dict, Iterable, Iterator, List, MutableMapping, Optional

from .errors import NotFoundError
from .models import STATUS_COMPLETED, Shift
from .service_types import is_inspection


class ShiftBook(MutableMapping[str, Shift]):
    """A thin mapping-like wrapper over shifts keyed by id."""

    def __init__(self, shifts: Iterable[Shift] | None = None) -> None:
        self._data: Dict[str, Shift] = {}
        if shifts:
            for shift in shifts:
                self.add(shift)

    # -- MutableMapping protocol -------------------------------------------------
    def __getitem__(self, key: str) -> Shift:
        return self._data[key]

    def __setitem__(self, key: str, value: Shift) -> None:
        self._data[key] = value

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    # -- Core helpers -------------------------------------------------------------
    def add(self, shift: Shift) -> None:
        self._data[shift.id] = shift

    def require(self, shift_id: str) -> Shift:
        try:
            return self._data[shift_id]
        except KeyError:
            raise NotFoundError(shift_id) from None

    def between(self, start: date, end: date) -> List[Shift]:
        return [shift for shift in self._data.values() if start <= shift.date <= end]

    def latest_completed_cleaning(self, property_id: str) -> Optional[Shift]:
        """Most recently finished non-inspection shift for a property.

        Completed shifts are ranked by ``actual_end_time`` (missing counts as
        0); the first one recorded wins a tie.
        """

        candidates = [
            shift
            for shift in self._data.values()
            if shift.property_id == property_id
            and shift.status == STATUS_COMPLETED
            and not is_inspection(shift.service_type)
        ]
        if not candidates:
            return None
        return sorted(candidates, key=lambda shift: -(shift.actual_end_time or 0))[0]

    def ordered(self) -> List[Shift]:
        return sorted(self._data.values(), key=lambda shift: (shift.date, shift.start_time, shift.id))

    def copy(self) -> "ShiftBook":
        return ShiftBook(copy.deepcopy(list(self._data.values())))
