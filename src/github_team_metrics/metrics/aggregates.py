"""Raw aggregates for one scope over one period.

A scope filters by actor, by repository, by both, or by neither (team).
Events are attributed to the period containing their own timestamp:
pull requests by creation, merge and close time, reviews by submission,
comments and commits by creation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from statistics import fmean
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from github_team_metrics.db.models import (
    Activity,
    ActivityState,
    Comment,
    Commit,
    Review,
    ReviewState,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class Scope:
    """Who a metric sample describes."""

    actor_id: int | None = None
    repository_id: int | None = None

    @property
    def metric_name(self) -> str:
        if self.actor_id is not None:
            return "actor_activity"
        if self.repository_id is not None:
            return "repository_activity"
        return "team_aggregate"

    @property
    def is_team(self) -> bool:
        return self.actor_id is None and self.repository_id is None

    @property
    def label(self) -> str:
        parts = []
        if self.actor_id is not None:
            parts.append(f"actor {self.actor_id}")
        if self.repository_id is not None:
            parts.append(f"repository {self.repository_id}")
        return ", ".join(parts) or "team"


def _mean(values: list[float]) -> float | None:
    return round(fmean(values), 2) if values else None


def _pct(part: int, whole: int) -> float | None:
    return round(part / whole * 100, 2) if whole else None


def _in_period(column: Any, start: datetime, end: datetime) -> Any:
    return (column >= start) & (column < end)


async def compute_aggregates(
    session: AsyncSession,
    scope: Scope,
    start: datetime,
    end: datetime,
) -> dict[str, Any]:
    """Compute counts, averages and ratios for ``scope`` over ``[start, end)``.

    Returns:
        Dict keyed by MetricSample column names
    """
    actor_id = scope.actor_id
    repo_filter = (
        [Activity.repository_id == scope.repository_id] if scope.repository_id is not None else []
    )
    author_filter = [Activity.author_id == actor_id] if actor_id is not None else []

    opened = list(
        (
            await session.execute(
                select(Activity).where(
                    _in_period(Activity.github_created_at, start, end),
                    *repo_filter,
                    *author_filter,
                )
            )
        ).scalars()
    )
    merged = list(
        (
            await session.execute(
                select(Activity).where(
                    _in_period(Activity.merged_at, start, end),
                    *repo_filter,
                    *author_filter,
                )
            )
        ).scalars()
    )
    closed = list(
        (
            await session.execute(
                select(Activity.id).where(
                    _in_period(Activity.closed_at, start, end),
                    Activity.state == ActivityState.CLOSED,
                    *repo_filter,
                    *author_filter,
                )
            )
        ).scalars()
    )

    # Reviews, with the reviewed pull request's author and repository
    review_rows = (
        await session.execute(
            select(Review, Activity.author_id, Activity.repository_id, Activity.github_created_at)
            .join(Activity, Review.activity_id == Activity.id)
            .where(
                _in_period(Review.submitted_at, start, end),
                Review.state != ReviewState.PENDING,
                *repo_filter,
            )
        )
    ).all()
    if actor_id is not None:
        reviews_given = [row for row in review_rows if row[0].reviewer_id == actor_id]
        reviews_received = [
            row for row in review_rows if row[1] == actor_id and row[0].reviewer_id != actor_id
        ]
    else:
        reviews_given = reviews_received = list(review_rows)

    comment_rows = (
        await session.execute(
            select(Comment, Activity.author_id, Activity.repository_id)
            .join(Activity, Comment.activity_id == Activity.id)
            .where(_in_period(Comment.github_created_at, start, end), *repo_filter)
        )
    ).all()
    if actor_id is not None:
        comments_given = [row for row in comment_rows if row[0].author_id == actor_id]
        comments_received = [
            row for row in comment_rows if row[1] == actor_id and row[0].author_id != actor_id
        ]
    else:
        comments_given = comments_received = list(comment_rows)

    commit_stmt = select(Commit).where(_in_period(Commit.committed_at, start, end))
    if scope.repository_id is not None:
        commit_stmt = commit_stmt.where(Commit.repository_id == scope.repository_id)
    if actor_id is not None:
        commit_stmt = commit_stmt.where(Commit.author_id == actor_id)
    commits = list((await session.execute(commit_stmt)).scalars())

    approved = sum(1 for row in reviews_given if row[0].state == ReviewState.APPROVED)
    review_comment_count = sum(1 for row in comments_given if row[0].review_id is not None)
    review_times = [
        (row[0].submitted_at - row[3]).total_seconds() / 60
        for row in reviews_given
        if row[0].submitted_at is not None
    ]

    if actor_id is not None:
        collaborators = {row[1] for row in reviews_given} | {
            row[0].reviewer_id for row in reviews_received
        }
        collaborators.discard(actor_id)
    else:
        collaborators = (
            {a.author_id for a in opened}
            | {row[0].reviewer_id for row in reviews_given}
            | {row[0].author_id for row in comments_given}
        )
    collaborators.discard(None)

    repositories_touched = (
        {a.repository_id for a in opened}
        | {row[2] for row in reviews_given}
        | {row[2] for row in comments_given}
    )

    return {
        "pull_requests_opened": len(opened),
        "pull_requests_closed": len(closed),
        "pull_requests_merged": len(merged),
        "reviews_given": len(reviews_given),
        "reviews_received": len(reviews_received),
        "comments_given": len(comments_given),
        "comments_received": len(comments_received),
        "commits_count": len(commits),
        # Pull request totals plus the commits made in the period
        "lines_added": sum(a.additions for a in opened) + sum(c.additions for c in commits),
        "lines_deleted": sum(a.deletions for a in opened) + sum(c.deletions for c in commits),
        "files_changed": (
            sum(a.changed_files for a in opened) + sum(c.changed_files for c in commits)
        ),
        "avg_time_to_first_review": _mean(
            [a.time_to_first_review for a in opened if a.time_to_first_review is not None]
        ),
        "avg_time_to_merge": _mean(
            [a.time_to_merge for a in merged if a.time_to_merge is not None]
        ),
        "avg_review_time": _mean(review_times),
        "avg_reviews_per_pr": _mean([a.reviews_count for a in opened]),
        "avg_comments_per_pr": _mean([a.comments_count for a in opened]),
        "avg_comments_per_review": (
            round(review_comment_count / len(reviews_given), 2) if reviews_given else None
        ),
        "merge_rate": _pct(len(merged), len(opened)),
        "approval_rate": _pct(approved, len(reviews_given)),
        "unique_collaborators": len(collaborators),
        "cross_repo_activity": len(repositories_touched),
    }
