"""Calendar arithmetic for duty occurrences: weekdays, windows, recurrence, ISO weeks."""

from __future__ import annotations

import enum
import json
from collections import Counter
from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import Iterable, Optional

from campus_roster.exceptions import ValidationError


# Longest range a single recurring assignment may cover
MAX_RANGE_DAYS = 400


class Weekday(str, enum.Enum):
    MON = "mon"
    TUE = "tue"
    WED = "wed"
    THU = "thu"
    FRI = "fri"
    SAT = "sat"
    SUN = "sun"

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return _WEEKDAY_ORDER[day.weekday()]


_WEEKDAY_ORDER = list(Weekday)

ALL_WEEKDAYS = frozenset(Weekday)
SCHOOL_WEEK = frozenset(ALL_WEEKDAYS - {Weekday.SUN})


class RecurrencePattern(str, enum.Enum):
    """How an assignment repeats between start_date and end_date"""
    NONE = "none"      # single occurrence on start_date
    DAILY = "daily"    # every applicable weekday of the time slot
    WEEKLY = "weekly"  # explicit weekday set


def parse_weekdays(value) -> frozenset[Weekday]:
    """
    Parse stored weekday sets.

    Accepts JSON text ('["mon","tue"]'), PostgreSQL array literals
    ('{mon,tue}'), comma separated text or any iterable of names.
    Full names ("monday") are truncated to their three-letter code.
    """
    if value is None:
        return frozenset()
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return frozenset()
        if raw.startswith("["):
            items = json.loads(raw)
        elif raw.startswith("{"):
            items = raw.strip("{}").split(",")
        else:
            items = raw.split(",")
    else:
        items = list(value)

    weekdays = set()
    for item in items:
        name = str(getattr(item, "value", item)).strip().strip('"').lower()
        if not name:
            continue
        try:
            weekdays.add(Weekday(name[:3]))
        except ValueError as exc:
            raise ValidationError(f"Unknown weekday: {name}") from exc
    return frozenset(weekdays)


def dump_weekdays(weekdays: Iterable[Weekday]) -> str:
    """Serialise in calendar order"""
    wanted = {Weekday(w) for w in weekdays}
    ordered = [w.value for w in _WEEKDAY_ORDER if w in wanted]
    return json.dumps(ordered)


@dataclass(frozen=True)
class TimeWindow:
    """Half-open [start, end) period within one day"""

    start: time
    end: time

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValidationError(
                f"Time window start {self.start:%H:%M} must be before end {self.end:%H:%M}"
            )

    def overlaps(self, other: "TimeWindow") -> bool:
        # touching windows (end == start) do not overlap
        return other.start < self.end and other.end > self.start

    def to_dict(self) -> dict:
        return {"start": self.start.strftime("%H:%M"), "end": self.end.strftime("%H:%M")}


def expand_occurrences(
    start_date: date,
    end_date: Optional[date],
    pattern: RecurrencePattern,
    weekdays: Optional[Iterable[Weekday]] = None,
) -> list[date]:
    """
    Concrete calendar dates of an assignment.

    Args:
        start_date: first day
        end_date: last day (inclusive); required for recurring patterns
        pattern: recurrence pattern
        weekdays: allowed weekdays (DAILY: defaults to every day; WEEKLY: required)

    Returns:
        sorted list of dates, never empty
    """
    if pattern == RecurrencePattern.NONE:
        if end_date is not None and end_date != start_date:
            raise ValidationError("A non-recurring assignment cannot span several days")
        return [start_date]

    if end_date is None:
        raise ValidationError("Recurring assignments need an end_date")
    if end_date < start_date:
        raise ValidationError("end_date must not be before start_date")
    if (end_date - start_date).days > MAX_RANGE_DAYS:
        raise ValidationError(f"Assignments may span at most {MAX_RANGE_DAYS} days")

    allowed = frozenset(Weekday(w) for w in weekdays) if weekdays else frozenset()
    if pattern == RecurrencePattern.WEEKLY and not allowed:
        raise ValidationError("Weekly recurrence needs at least one weekday")
    if pattern == RecurrencePattern.DAILY and not allowed:
        allowed = ALL_WEEKDAYS

    dates = []
    current = start_date
    while current <= end_date:
        if Weekday.of(current) in allowed:
            dates.append(current)
        current += timedelta(days=1)

    if not dates:
        raise ValidationError("The date range contains no matching weekday")
    return dates


def iso_week_key(day: date) -> tuple[int, int]:
    iso = day.isocalendar()
    return iso[0], iso[1]


def iso_week_bounds(key: tuple[int, int]) -> tuple[date, date]:
    """Monday and Sunday of an ISO week"""
    monday = date.fromisocalendar(key[0], key[1], 1)
    return monday, monday + timedelta(days=6)


def count_by_iso_week(dates: Iterable[date]) -> Counter:
    return Counter(iso_week_key(d) for d in dates)
