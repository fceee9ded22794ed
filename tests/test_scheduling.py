from __future__ import annotations

from datetime import date, time

import pytest

from campus_roster.domain.scheduling import (
    RecurrencePattern,
    TimeWindow,
    Weekday,
    count_by_iso_week,
    dump_weekdays,
    expand_occurrences,
    iso_week_bounds,
    parse_weekdays,
)
from campus_roster.exceptions import ValidationError


def test_overlap_uses_strict_inequalities():
    gate = TimeWindow(time(7, 30), time(8, 15))

    assert gate.overlaps(TimeWindow(time(7, 45), time(8, 30)))
    assert gate.overlaps(TimeWindow(time(7, 0), time(9, 0)))
    assert not gate.overlaps(TimeWindow(time(12, 0), time(12, 45)))
    # touching windows share only the boundary
    assert not gate.overlaps(TimeWindow(time(8, 15), time(9, 0)))
    assert not gate.overlaps(TimeWindow(time(7, 0), time(7, 30)))


def test_window_rejects_empty_or_inverted_ranges():
    with pytest.raises(ValidationError):
        TimeWindow(time(9, 0), time(9, 0))
    with pytest.raises(ValidationError):
        TimeWindow(time(10, 0), time(9, 0))


def test_single_occurrence_on_start_date():
    assert expand_occurrences(date(2025, 3, 3), None, RecurrencePattern.NONE) == [date(2025, 3, 3)]
    assert expand_occurrences(date(2025, 3, 3), date(2025, 3, 3), RecurrencePattern.NONE) == [date(2025, 3, 3)]

    with pytest.raises(ValidationError):
        expand_occurrences(date(2025, 3, 3), date(2025, 3, 4), RecurrencePattern.NONE)


def test_daily_expansion_follows_allowed_weekdays():
    school_week = [Weekday.MON, Weekday.TUE, Weekday.WED, Weekday.THU, Weekday.FRI]
    dates = expand_occurrences(date(2025, 3, 3), date(2025, 3, 9), RecurrencePattern.DAILY, school_week)

    assert dates == [date(2025, 3, d) for d in range(3, 8)]


def test_daily_without_weekdays_covers_every_day():
    dates = expand_occurrences(date(2025, 3, 3), date(2025, 3, 9), RecurrencePattern.DAILY)

    assert len(dates) == 7


def test_weekly_expansion_needs_weekdays():
    dates = expand_occurrences(
        date(2025, 3, 3), date(2025, 3, 16), RecurrencePattern.WEEKLY, ["mon", "wed"]
    )
    assert dates == [date(2025, 3, 3), date(2025, 3, 5), date(2025, 3, 10), date(2025, 3, 12)]

    with pytest.raises(ValidationError):
        expand_occurrences(date(2025, 3, 3), date(2025, 3, 16), RecurrencePattern.WEEKLY, [])


def test_recurring_range_validation():
    with pytest.raises(ValidationError):
        expand_occurrences(date(2025, 3, 3), None, RecurrencePattern.DAILY)
    with pytest.raises(ValidationError):
        expand_occurrences(date(2025, 3, 7), date(2025, 3, 3), RecurrencePattern.DAILY)
    with pytest.raises(ValidationError):
        expand_occurrences(date(2025, 1, 1), date(2026, 3, 1), RecurrencePattern.DAILY)


def test_range_without_matching_weekday_is_rejected():
    # 2025-03-08 is a Saturday, 2025-03-09 a Sunday
    with pytest.raises(ValidationError):
        expand_occurrences(date(2025, 3, 8), date(2025, 3, 9), RecurrencePattern.WEEKLY, ["mon"])


def test_parse_weekdays_accepts_stored_formats():
    expected = frozenset({Weekday.MON, Weekday.WED})

    assert parse_weekdays('["mon", "wed"]') == expected
    assert parse_weekdays("{mon,wed}") == expected
    assert parse_weekdays("Monday, Wednesday") == expected
    assert parse_weekdays([Weekday.MON, "wed"]) == expected
    assert parse_weekdays(None) == frozenset()
    assert parse_weekdays("") == frozenset()

    with pytest.raises(ValidationError):
        parse_weekdays("funday")


def test_dump_weekdays_is_in_calendar_order():
    assert dump_weekdays({"fri", Weekday.MON, "wed"}) == '["mon", "wed", "fri"]'


def test_iso_week_helpers():
    # 2024-12-30 (Mon) belongs to ISO week 2025-W01
    counts = count_by_iso_week([date(2024, 12, 30), date(2025, 1, 5), date(2025, 1, 6)])

    assert counts == {(2025, 1): 2, (2025, 2): 1}
    assert iso_week_bounds((2025, 1)) == (date(2024, 12, 30), date(2025, 1, 5))
