"""Job triggers: fixed intervals and 5-field cron expressions.

Both evaluate in UTC and expose ``next_after(moment)``, the first fire
time strictly after ``moment``.

Cron fields (minute hour day-of-month month day-of-week) accept ``*``,
``*/n``, ``a``, ``a-b``, ``a-b/n``, ``a/n`` and comma-separated lists.
Day-of-week runs 0-6 from Sunday (7 is also Sunday). When both
day-of-month and day-of-week are restricted, a day matching either fires.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

_INTERVAL_RE = re.compile(r"^\s*(\d+)\s*([smhd])\s*$", re.IGNORECASE)
_INTERVAL_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}

# (name, min, max) per cron field
_FIELDS = (
    ("minute", 0, 59),
    ("hour", 0, 23),
    ("day of month", 1, 31),
    ("month", 1, 12),
    ("day of week", 0, 7),
)

# Upper bound on the day-by-day search (covers Feb 29 schedules)
_MAX_SEARCH_DAYS = 366 * 5


class Schedule(Protocol):
    def next_after(self, moment: datetime) -> datetime: ...

    def describe(self) -> str: ...


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


@dataclass(frozen=True)
class IntervalSchedule:
    """Fires every ``interval``, measured from the previous fire time."""

    interval: timedelta

    def __post_init__(self) -> None:
        if self.interval <= timedelta(0):
            raise ValueError("Interval must be positive")

    @classmethod
    def parse(cls, value: str | timedelta) -> IntervalSchedule:
        """Build from a timedelta or a string like ``"30m"``, ``"6h"``, ``"1d"``."""
        if isinstance(value, timedelta):
            return cls(value)
        match = _INTERVAL_RE.match(value)
        if match is None:
            raise ValueError(f"Invalid interval: {value!r} (expected e.g. '30m', '6h')")
        amount, unit = int(match.group(1)), match.group(2).lower()
        return cls(timedelta(**{_INTERVAL_UNITS[unit]: amount}))

    def next_after(self, moment: datetime) -> datetime:
        return _as_utc(moment) + self.interval

    def describe(self) -> str:
        return f"every {self.interval}"


@dataclass(frozen=True)
class CronSchedule:
    """A parsed 5-field cron expression."""

    expression: str
    minutes: frozenset[int]
    hours: frozenset[int]
    days: frozenset[int]
    months: frozenset[int]
    weekdays: frozenset[int]
    day_restricted: bool
    weekday_restricted: bool

    @classmethod
    def parse(cls, expression: str) -> CronSchedule:
        """Parse a cron expression.

        Raises:
            ValueError: If the expression is malformed or out of range
        """
        parts = expression.split()
        if len(parts) != 5:
            raise ValueError(f"Cron expression needs 5 fields, got {len(parts)}: {expression!r}")

        values = [
            _parse_field(part, name, low, high)
            for part, (name, low, high) in zip(parts, _FIELDS, strict=True)
        ]
        # Sunday may be written as 0 or 7
        weekdays = frozenset(0 if d == 7 else d for d in values[4])

        return cls(
            expression=" ".join(parts),
            minutes=values[0],
            hours=values[1],
            days=values[2],
            months=values[3],
            weekdays=weekdays,
            day_restricted=parts[2] != "*",
            weekday_restricted=parts[4] != "*",
        )

    def _day_matches(self, moment: datetime) -> bool:
        # Python: Monday=0 .. Sunday=6; cron: Sunday=0 .. Saturday=6
        weekday = (moment.weekday() + 1) % 7
        day_ok = moment.day in self.days
        weekday_ok = weekday in self.weekdays
        if self.day_restricted and self.weekday_restricted:
            return day_ok or weekday_ok
        return day_ok and weekday_ok

    def next_after(self, moment: datetime) -> datetime:
        """First fire time strictly after ``moment`` (UTC, minute resolution)."""
        candidate = _as_utc(moment).replace(second=0, microsecond=0) + timedelta(minutes=1)
        limit = candidate + timedelta(days=_MAX_SEARCH_DAYS)

        while candidate < limit:
            if candidate.month not in self.months:
                year = candidate.year + candidate.month // 12
                month = candidate.month % 12 + 1
                candidate = candidate.replace(year=year, month=month, day=1, hour=0, minute=0)
                continue
            if not self._day_matches(candidate):
                candidate = (candidate + timedelta(days=1)).replace(hour=0, minute=0)
                continue
            if candidate.hour not in self.hours:
                candidate = (candidate + timedelta(hours=1)).replace(minute=0)
                continue
            if candidate.minute not in self.minutes:
                candidate += timedelta(minutes=1)
                continue
            return candidate

        raise ValueError(f"Cron expression never fires: {self.expression!r}")

    def describe(self) -> str:
        return f"cron '{self.expression}'"


def _parse_field(part: str, name: str, low: int, high: int) -> frozenset[int]:
    values: set[int] = set()
    for item in part.split(","):
        if not item:
            raise ValueError(f"Empty item in {name} field: {part!r}")

        step = 1
        if "/" in item:
            item, step_text = item.split("/", 1)
            if not step_text.isdigit() or int(step_text) == 0:
                raise ValueError(f"Invalid step in {name} field: {part!r}")
            step = int(step_text)

        if item == "*":
            start, end = low, high
        elif "-" in item:
            start_text, end_text = item.split("-", 1)
            start, end = _parse_number(start_text, name), _parse_number(end_text, name)
        else:
            start = _parse_number(item, name)
            # "a/n" runs from a to the field maximum
            end = high if step > 1 else start

        if start < low or end > high or start > end:
            raise ValueError(f"{name.capitalize()} out of range {low}-{high}: {part!r}")
        values.update(range(start, end + 1, step))

    return frozenset(values)


def _parse_number(text: str, name: str) -> int:
    if not text.isdigit():
        raise ValueError(f"Invalid {name} value: {text!r}")
    return int(text)


def parse_schedule(value: str | timedelta | Schedule) -> Schedule:
    """Interpret a job trigger.

    Strings with five fields are cron expressions; other strings and
    timedeltas are intervals.
    """
    if isinstance(value, timedelta):
        return IntervalSchedule(value)
    if isinstance(value, str):
        if len(value.split()) == 5:
            return CronSchedule.parse(value)
        return IntervalSchedule.parse(value)
    return value
