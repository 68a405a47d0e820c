"""JSON-friendly conversion for shifts and the read models built on them."""
from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Any, Dict, List

from ..domain.models import Shift, SpecialReport
from ..rules.timeutil import to_12h, to_short_label


def shift_to_dict(shift: Shift) -> Dict[str, Any]:
    payload = asdict(shift)
    payload["date"] = shift.date.isoformat()
    return payload


def shift_to_view(shift: Shift) -> Dict[str, Any]:
    """Storage form plus display labels."""
    payload = shift_to_dict(shift)
    payload["date_label"] = to_short_label(shift.date)
    payload["start_label"] = to_12h(shift.start_time)
    payload["end_label"] = to_12h(shift.end_time)
    return payload


def shift_from_dict(payload: Dict[str, Any]) -> Shift:
    data = dict(payload)
    data["date"] = date.fromisoformat(data["date"])
    data["reports"] = [SpecialReport(**report) for report in data.get("reports") or []]
    data["staff_ids"] = list(data.get("staff_ids") or [])
    known = Shift.__dataclass_fields__
    return Shift(**{key: value for key, value in data.items() if key in known})


def shifts_to_list(shifts: List[Shift]) -> List[Dict[str, Any]]:
    return [shift_to_view(shift) for shift in shifts]


def change_to_dict(change: Any) -> Dict[str, Any]:
    return {
        "shift": shift_to_view(change.shift),
        "published": [shift.id for shift in change.published],
        "advisories": [advisory.as_dict() for advisory in change.advisories],
        "registered_service_type": change.registered_service_type,
    }


def outcome_to_dict(outcome: Any) -> Dict[str, Any]:
    return {
        "shift": shift_to_view(outcome.shift),
        "updated": shifts_to_list(outcome.updated),
        "created": shifts_to_list(outcome.created),
        "cascaded_to": outcome.cascaded_to,
    }


def grid_to_dict(grid: Any) -> Dict[str, Any]:
    return {
        "week_start": grid.week_start.isoformat(),
        "days": [day.isoformat() for day in grid.days],
        "has_unpublished": grid.has_unpublished,
        "rows": [
            {
                "staff": {"id": row.staff.id, "name": row.staff.name, "role": row.staff.role},
                "active_now": row.active_now,
                "cells": [
                    {
                        "day": cell.day.isoformat(),
                        "shifts": shifts_to_list(cell.shifts),
                        "on_approved_leave": cell.on_approved_leave,
                        "on_pending_leave": cell.on_pending_leave,
                        "leave_kind": cell.leave_kind,
                        "active_now": cell.active_now,
                        "can_add_shift": cell.can_add_shift,
                    }
                    for cell in row.cells
                ],
            }
            for row in grid.rows
        ],
        "open_shifts": {day.isoformat(): shifts_to_list(items) for day, items in grid.open_shifts.items()},
    }
