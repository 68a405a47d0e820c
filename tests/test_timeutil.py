from datetime import date, datetime

import pytest

from shiftdesk.domain.errors import ValidationError
from shiftdesk.rules.timeutil import (
    normalize_time,
    overlaps,
    time_to_minutes,
    timestamp_with_time,
    to_12h,
    to_24h,
    to_canonical_date,
    to_short_label,
    week_dates,
    week_start,
)

TODAY = date(2024, 3, 1)


def test_canonical_date_accepts_iso_and_short_labels():
    assert to_canonical_date("2024-03-05", today=TODAY) == date(2024, 3, 5)
    assert to_canonical_date("2024-03-05T09:30:00", today=TODAY) == date(2024, 3, 5)
    assert to_canonical_date("05 MAR", today=TODAY) == date(2024, 3, 5)
    assert to_canonical_date("5 mar", today=TODAY) == date(2024, 3, 5)
    assert to_canonical_date("05 MAR 2025", today=TODAY) == date(2025, 3, 5)
    assert to_canonical_date("05/03/2024", today=TODAY) == date(2024, 3, 5)


def test_canonical_date_passes_dates_through():
    assert to_canonical_date(date(2024, 3, 5)) == date(2024, 3, 5)
    assert to_canonical_date(datetime(2024, 3, 5, 18, 0)) == date(2024, 3, 5)


def test_canonical_date_falls_back_to_today_unless_strict():
    assert to_canonical_date("next tuesday", today=TODAY) == TODAY
    assert to_canonical_date(None, today=TODAY) == TODAY
    with pytest.raises(ValidationError):
        to_canonical_date("next tuesday", today=TODAY, strict=True)
    with pytest.raises(ValidationError):
        to_canonical_date("31 FEB", today=TODAY, strict=True)


def test_short_label_round_trips_through_canonical_date():
    assert to_short_label(date(2024, 3, 5)) == "05 MAR"
    assert to_canonical_date(to_short_label(date(2024, 12, 31)), today=date(2024, 6, 1)) == date(2024, 12, 31)


def test_clock_conversions():
    assert to_24h("01:30 PM") == "13:30"
    assert to_24h("12:00 AM") == "00:00"
    assert to_24h("12:15 PM") == "12:15"
    assert to_24h("9:05") == "09:05"
    assert to_12h("13:30") == "01:30 PM"
    assert to_12h("00:10") == "12:10 AM"
    assert to_12h("12:00") == "12:00 PM"


@pytest.mark.parametrize("value", ["", "25:00", "10:75", "13:00 PM", "noon"])
def test_clock_conversion_rejects_malformed(value):
    with pytest.raises(ValidationError):
        to_24h(value)


def test_normalize_time_uses_default_for_blank():
    assert normalize_time(None, "10:00") == "10:00"
    assert normalize_time("  ", "14:00") == "14:00"
    assert normalize_time("2:00 PM", "10:00") == "14:00"


def test_overlaps_is_half_open():
    assert overlaps(time_to_minutes("09:00"), time_to_minutes("12:00"), time_to_minutes("11:00"), time_to_minutes("13:00"))
    assert not overlaps(time_to_minutes("09:00"), time_to_minutes("12:00"), time_to_minutes("12:00"), time_to_minutes("13:00"))
    assert not overlaps(600, 600, 500, 700)


def test_week_starts_on_monday():
    assert week_start(date(2024, 3, 10)) == date(2024, 3, 4)
    assert week_start(date(2024, 3, 4)) == date(2024, 3, 4)
    days = week_dates(date(2024, 3, 6))
    assert days[0] == date(2024, 3, 4)
    assert days[-1] == date(2024, 3, 10)
    assert len(days) == 7


def test_timestamp_with_time_keeps_original_when_blank():
    assert timestamp_with_time(1234, None, date(2024, 3, 5)) == 1234
    corrected = timestamp_with_time(1234, "09:15", date(2024, 3, 5))
    assert datetime.fromtimestamp(corrected / 1000) == datetime(2024, 3, 5, 9, 15)
