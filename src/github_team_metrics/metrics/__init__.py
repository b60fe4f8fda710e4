"""Metric rollups over synced activity.

- MetricsEngine: single-flight calculation of MetricSample rows
- periods: aligned half-open rollup periods
- aggregates / scores: raw counts, ratios and composite scores
"""

from .aggregates import Scope, compute_aggregates
from .engine import MetricsEngine, MetricsOptions, MetricsResult
from .periods import default_span_start, generate_periods, period_start, previous_period
from .scores import compute_scores, confidence, data_points

__all__ = [
    "MetricsEngine",
    "MetricsOptions",
    "MetricsResult",
    "Scope",
    "compute_aggregates",
    "compute_scores",
    "confidence",
    "data_points",
    "default_span_start",
    "generate_periods",
    "period_start",
    "previous_period",
]
