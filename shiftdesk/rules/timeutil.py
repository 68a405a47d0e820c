"""Date and wall-clock helpers shared by the scheduling rules."""
from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Union

from ..domain.errors import ValidationError

__all__ = [
    "to_canonical_date",
    "to_short_label",
    "to_12h",
    "to_24h",
    "normalize_time",
    "time_to_minutes",
    "overlaps",
    "interval_minutes",
    "week_start",
    "week_dates",
    "timestamp_with_time",
]

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str, None]

_MONTHS = {
    "JAN": 1, "FEB": 2, "MAR": 3, "APR": 4, "MAY": 5, "JUN": 6,
    "JUL": 7, "AUG": 8, "SEP": 9, "OCT": 10, "NOV": 11, "DEC": 12,
}
_MONTH_LABELS = {number: label for label, number in _MONTHS.items()}

_SHORT_LABEL_RE = re.compile(r"^(\d{1,2})[\s.\-]*([A-Za-z]{3,})\.?(?:[\s,]+(\d{4}))?$")
_SLASHED_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_TIME_24_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_TIME_12_RE = re.compile(r"^(\d{1,2}):(\d{2})\s*([AaPp][Mm])$")


def _parse(value: str, today: date) -> Optional[date]:
    text = value.strip()
    if not text:
        return None
    if "-" in text[:10] and text[:4].isdigit():
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    match = _SLASHED_RE.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    match = _SHORT_LABEL_RE.match(text)
    if match:
        day_part, month_part, year_part = match.groups()
        month = _MONTHS.get(month_part[:3].upper())
        if month is None:
            return None
        year = int(year_part) if year_part else today.year
        try:
            return date(year, month, int(day_part))
        except ValueError:
            return None
    return None


def to_canonical_date(value: DateLike, *, today: Optional[date] = None, strict: bool = False) -> date:
    """Normalise ISO strings, short labels (``"05 MAR"``) and dates into a ``date``.

    Labels without a year take the year of *today*. Unparseable input
    returns *today* with a warning, or raises ``ValidationError`` when
    *strict* is set.
    """

    today = today or date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = _parse(value, today) if isinstance(value, str) else None
    if parsed is not None:
        return parsed
    if strict:
        raise ValidationError(f"Unrecognised date: {value!r}")
    logger.warning("Unparseable date %r, falling back to %s", value, today.isoformat())
    return today


def to_short_label(day: date) -> str:
    """Render ``date(2024, 3, 5)`` as ``"05 MAR"``."""
    return f"{day.day:02d} {_MONTH_LABELS[day.month]}"


def to_24h(value: Optional[str]) -> str:
    """Convert ``"01:30 PM"`` to ``"13:30"``; 24h input is validated and zero-padded."""

    text = (value or "").strip()
    match = _TIME_12_RE.match(text)
    if match:
        hours, minutes, modifier = int(match.group(1)), int(match.group(2)), match.group(3).upper()
        if not 1 <= hours <= 12 or minutes > 59:
            raise ValidationError(f"Invalid 12h time: {value!r}")
        hours = hours % 12
        if modifier == "PM":
            hours += 12
        return f"{hours:02d}:{minutes:02d}"
    match = _TIME_24_RE.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            raise ValidationError(f"Invalid time: {value!r}")
        return f"{hours:02d}:{minutes:02d}"
    raise ValidationError(f"Invalid time: {value!r}")


def to_12h(value: Optional[str]) -> str:
    """Convert ``"13:30"`` to ``"01:30 PM"``."""

    hours, minutes = (int(part) for part in to_24h(value).split(":"))
    modifier = "PM" if hours >= 12 else "AM"
    hours = hours % 12 or 12
    return f"{hours:02d}:{minutes:02d} {modifier}"


def normalize_time(value: Optional[str], default: str) -> str:
    if value is None or not str(value).strip():
        return to_24h(default)
    return to_24h(str(value))


def time_to_minutes(value: str) -> int:
    hours, minutes = (int(part) for part in to_24h(value).split(":"))
    return hours * 60 + minutes


def interval_minutes(start: str, end: str) -> tuple[int, int]:
    return time_to_minutes(start), time_to_minutes(end)


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open interval overlap. Empty intervals overlap nothing."""

    if a_start >= a_end or b_start >= b_end:
        return False
    return a_start < b_end and a_end > b_start


def week_start(day: date) -> date:
    """Return the Monday of the week containing *day*."""
    if isinstance(day, datetime):
        day = day.date()
    return day - timedelta(days=day.weekday())


def week_dates(day: date) -> List[date]:
    start = week_start(day)
    return [start + timedelta(days=offset) for offset in range(7)]


def timestamp_with_time(original: Optional[int], value: Optional[str], day: date) -> Optional[int]:
    """Rebuild an epoch-millis timestamp on *day* at wall clock *value*.

    Used when an auditor corrects the recorded start/end of a shift.
    """

    if not value:
        return original
    hours, minutes = (int(part) for part in to_24h(value).split(":"))
    moment = datetime.combine(day, time(hours, minutes))
    return int(moment.timestamp() * 1000)
