"""Aligned rollup periods.

Every period is a half-open interval ``[start, end)`` aligned to its
natural boundary: the hour, midnight, Sunday 00:00, the first of the
month, the first month of the quarter, or January 1st. All values are
naive UTC.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from github_team_metrics.db.models import MetricType
from github_team_metrics.schemas.base import as_naive_utc

Period = tuple[datetime, datetime]


def _add_months(moment: datetime, months: int) -> datetime:
    """Shift a first-of-month datetime by ``months``."""
    index = moment.year * 12 + (moment.month - 1) + months
    return moment.replace(year=index // 12, month=index % 12 + 1)


def period_start(moment: datetime, metric_type: MetricType) -> datetime:
    """Start of the period containing ``moment``."""
    moment = as_naive_utc(moment)
    assert moment is not None
    hour = moment.replace(minute=0, second=0, microsecond=0)
    if metric_type == MetricType.HOURLY:
        return hour

    day = hour.replace(hour=0)
    if metric_type == MetricType.DAILY:
        return day
    if metric_type == MetricType.WEEKLY:
        # weekday(): Monday=0 .. Sunday=6; weeks start on Sunday
        return day - timedelta(days=(day.weekday() + 1) % 7)

    month = day.replace(day=1)
    if metric_type == MetricType.MONTHLY:
        return month
    if metric_type == MetricType.QUARTERLY:
        return month.replace(month=(month.month - 1) // 3 * 3 + 1)
    return month.replace(month=1)


def next_period_start(start: datetime, metric_type: MetricType) -> datetime:
    """Start of the period following the aligned ``start``."""
    if metric_type == MetricType.HOURLY:
        return start + timedelta(hours=1)
    if metric_type == MetricType.DAILY:
        return start + timedelta(days=1)
    if metric_type == MetricType.WEEKLY:
        return start + timedelta(weeks=1)
    if metric_type == MetricType.MONTHLY:
        return _add_months(start, 1)
    if metric_type == MetricType.QUARTERLY:
        return _add_months(start, 3)
    return _add_months(start, 12)


def default_span_start(end: datetime, metric_type: MetricType) -> datetime:
    """Start of the default range ending at ``end``.

    hourly 7 days, daily 90 days, weekly 12 weeks, monthly 12 months,
    quarterly 4 quarters, yearly 3 years.
    """
    end = as_naive_utc(end)
    assert end is not None
    if metric_type == MetricType.HOURLY:
        return end - timedelta(days=7)
    if metric_type == MetricType.DAILY:
        return end - timedelta(days=90)
    if metric_type == MetricType.WEEKLY:
        return end - timedelta(weeks=12)

    month = end.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if metric_type in (MetricType.MONTHLY, MetricType.QUARTERLY):
        return _add_months(month, -12)
    return _add_months(month, -36)


def generate_periods(metric_type: MetricType, start: datetime, end: datetime) -> list[Period]:
    """Aligned periods overlapping ``[start, end)``.

    The first period starts at the boundary at or before ``start``; the
    last one may extend past ``end`` (a period in progress).
    """
    end = as_naive_utc(end)
    assert end is not None
    periods: list[Period] = []
    current = period_start(start, metric_type)
    while current < end:
        following = next_period_start(current, metric_type)
        periods.append((current, following))
        current = following
    return periods


def previous_period(metric_type: MetricType, now: datetime) -> Period:
    """The most recent complete period before ``now``."""
    current = period_start(now, metric_type)
    if metric_type == MetricType.HOURLY:
        previous = current - timedelta(hours=1)
    elif metric_type == MetricType.DAILY:
        previous = current - timedelta(days=1)
    elif metric_type == MetricType.WEEKLY:
        previous = current - timedelta(weeks=1)
    elif metric_type == MetricType.MONTHLY:
        previous = _add_months(current, -1)
    elif metric_type == MetricType.QUARTERLY:
        previous = _add_months(current, -3)
    else:
        previous = _add_months(current, -12)
    return previous, current
