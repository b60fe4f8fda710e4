"""Composite scores and sample confidence.

Scores are capped weighted sums of raw aggregates, bounded to
[0, score_cap]. Missing ratios count as zero.
"""

from typing import Any

from github_team_metrics.config import MetricsConfig

# Fields that count towards data_points / confidence
SAMPLE_FIELDS = (
    "pull_requests_opened",
    "pull_requests_closed",
    "pull_requests_merged",
    "reviews_given",
    "reviews_received",
    "comments_given",
    "comments_received",
    "commits_count",
    "lines_added",
    "lines_deleted",
    "files_changed",
    "avg_time_to_first_review",
    "avg_time_to_merge",
    "avg_review_time",
    "avg_reviews_per_pr",
    "avg_comments_per_pr",
    "avg_comments_per_review",
    "merge_rate",
    "approval_rate",
    "unique_collaborators",
    "cross_repo_activity",
    "productivity_score",
    "quality_score",
    "collaboration_score",
    "velocity_score",
)


def _capped(value: float, cap: float) -> float:
    return round(min(cap, max(0.0, value)), 2)


def compute_scores(
    aggregates: dict[str, Any],
    weights: MetricsConfig,
    *,
    include_velocity: bool,
) -> dict[str, float | None]:
    """Productivity, quality, collaboration and (optionally) velocity.

    Args:
        aggregates: Output of compute_aggregates()
        weights: Score weights and cap
        include_velocity: Velocity applies to team and repository scopes only
    """
    def get(name: str) -> float:
        return float(aggregates.get(name) or 0)

    cap = weights.score_cap
    scores: dict[str, float | None] = {
        "productivity_score": _capped(
            get("pull_requests_opened") * weights.productivity_pr_weight
            + get("commits_count") * weights.productivity_commit_weight
            + get("reviews_given") * weights.productivity_review_weight,
            cap,
        ),
        "quality_score": _capped(
            get("merge_rate") * weights.quality_merge_rate_weight
            + get("avg_reviews_per_pr") * weights.quality_reviews_per_pr_weight
            + get("approval_rate") * weights.quality_approval_rate_weight,
            cap,
        ),
        "collaboration_score": _capped(
            get("reviews_given") * weights.collaboration_review_weight
            + get("comments_given") * weights.collaboration_comment_weight
            + get("unique_collaborators") * weights.collaboration_collaborator_weight,
            cap,
        ),
        "velocity_score": None,
    }
    if include_velocity:
        scores["velocity_score"] = _capped(
            get("pull_requests_opened") * weights.velocity_pr_weight
            + get("commits_count") * weights.velocity_commit_weight,
            cap,
        )
    return scores


def data_points(values: dict[str, Any]) -> int:
    """Number of sample fields that are neither null nor zero."""
    return sum(1 for name in SAMPLE_FIELDS if values.get(name))


def confidence(values: dict[str, Any]) -> float:
    """Share of sample fields carrying data, in [0, 1]."""
    return round(data_points(values) / len(SAMPLE_FIELDS), 4)
