"""Tests for aligned rollup periods."""

from datetime import UTC, datetime

import pytest

from github_team_metrics.db.models import MetricType
from github_team_metrics.metrics import (
    default_span_start,
    generate_periods,
    period_start,
    previous_period,
)

# Wednesday
MOMENT = datetime(2024, 8, 14, 13, 47, 12)


@pytest.mark.parametrize(
    ("metric_type", "expected"),
    [
        (MetricType.HOURLY, datetime(2024, 8, 14, 13)),
        (MetricType.DAILY, datetime(2024, 8, 14)),
        (MetricType.WEEKLY, datetime(2024, 8, 11)),  # Sunday
        (MetricType.MONTHLY, datetime(2024, 8, 1)),
        (MetricType.QUARTERLY, datetime(2024, 7, 1)),
        (MetricType.YEARLY, datetime(2024, 1, 1)),
    ],
)
def test_period_start(metric_type, expected):
    assert period_start(MOMENT, metric_type) == expected


def test_period_start_of_sunday_is_itself():
    assert period_start(datetime(2024, 8, 11, 5), MetricType.WEEKLY) == datetime(2024, 8, 11)


def test_period_start_accepts_aware():
    aware = datetime(2024, 8, 14, 13, 47, tzinfo=UTC)
    assert period_start(aware, MetricType.DAILY) == datetime(2024, 8, 14)


class TestGeneratePeriods:
    def test_daily_half_open(self):
        periods = generate_periods(MetricType.DAILY, datetime(2024, 10, 1), datetime(2024, 10, 4))

        assert periods == [
            (datetime(2024, 10, 1), datetime(2024, 10, 2)),
            (datetime(2024, 10, 2), datetime(2024, 10, 3)),
            (datetime(2024, 10, 3), datetime(2024, 10, 4)),
        ]

    def test_first_period_aligned_before_start(self):
        periods = generate_periods(
            MetricType.DAILY, datetime(2024, 10, 1, 15), datetime(2024, 10, 2)
        )
        assert periods == [(datetime(2024, 10, 1), datetime(2024, 10, 2))]

    def test_partial_last_period_included(self):
        periods = generate_periods(
            MetricType.MONTHLY, datetime(2024, 11, 3), datetime(2025, 1, 10)
        )

        assert [start for start, _ in periods] == [
            datetime(2024, 11, 1),
            datetime(2024, 12, 1),
            datetime(2025, 1, 1),
        ]
        assert periods[-1][1] == datetime(2025, 2, 1)

    def test_quarterly(self):
        periods = generate_periods(MetricType.QUARTERLY, datetime(2024, 5, 5), datetime(2024, 12, 1))
        assert [start.month for start, _ in periods] == [4, 7, 10]

    def test_contiguous(self):
        periods = generate_periods(MetricType.WEEKLY, datetime(2024, 1, 1), datetime(2024, 4, 1))
        for (_, end), (next_start, _) in zip(periods, periods[1:], strict=False):
            assert end == next_start

    def test_empty_range(self):
        assert generate_periods(MetricType.DAILY, datetime(2024, 10, 2), datetime(2024, 10, 2)) == []


class TestSpans:
    @pytest.mark.parametrize(
        ("metric_type", "expected"),
        [
            (MetricType.HOURLY, datetime(2024, 8, 7, 13, 47, 12)),
            (MetricType.DAILY, datetime(2024, 5, 16, 13, 47, 12)),
            (MetricType.WEEKLY, datetime(2024, 5, 22, 13, 47, 12)),
            (MetricType.MONTHLY, datetime(2023, 8, 1)),
            (MetricType.QUARTERLY, datetime(2023, 8, 1)),
            (MetricType.YEARLY, datetime(2021, 8, 1)),
        ],
    )
    def test_default_span_start(self, metric_type, expected):
        assert default_span_start(MOMENT, metric_type) == expected

    @pytest.mark.parametrize(
        ("metric_type", "expected"),
        [
            (MetricType.HOURLY, (datetime(2024, 8, 14, 12), datetime(2024, 8, 14, 13))),
            (MetricType.DAILY, (datetime(2024, 8, 13), datetime(2024, 8, 14))),
            (MetricType.WEEKLY, (datetime(2024, 8, 4), datetime(2024, 8, 11))),
            (MetricType.MONTHLY, (datetime(2024, 7, 1), datetime(2024, 8, 1))),
            (MetricType.QUARTERLY, (datetime(2024, 4, 1), datetime(2024, 7, 1))),
            (MetricType.YEARLY, (datetime(2023, 1, 1), datetime(2024, 1, 1))),
        ],
    )
    def test_previous_period(self, metric_type, expected):
        assert previous_period(metric_type, MOMENT) == expected

    def test_previous_month_across_year(self):
        assert previous_period(MetricType.MONTHLY, datetime(2024, 1, 15)) == (
            datetime(2023, 12, 1),
            datetime(2024, 1, 1),
        )
