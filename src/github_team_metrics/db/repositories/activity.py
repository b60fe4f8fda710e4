"""Repository for Activity (pull request) model CRUD operations."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from github_team_metrics.db.models import (
    Activity,
    Comment,
    Review,
    ReviewState,
    activity_commits,
)
from github_team_metrics.schemas.base import utc_now

from .base import BaseRepository

if TYPE_CHECKING:
    from github_team_metrics.schemas.canonical import ActivityData


def _minutes_between(start: datetime, end: datetime | None) -> int | None:
    if end is None:
        return None
    return max(0, int((end - start).total_seconds() // 60))


class ActivityRepository(BaseRepository[Activity]):
    """Repository for pull requests and their derived counters.

    Counters (reviews, comments, commits) are never taken from upstream
    totals: ``reconcile_counters`` recounts the persisted child rows.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Activity)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_by_external_id(self, external_id: int) -> Activity | None:
        return await self._get_by_field("external_id", external_id)

    async def get_by_number(self, repository_id: int, number: int) -> Activity | None:
        """Get a pull request by repository and number."""
        stmt = select(Activity).where(
            Activity.repository_id == repository_id,
            Activity.number == number,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    # -------------------------------------------------------------------------
    # Upsert
    # -------------------------------------------------------------------------

    async def upsert(
        self,
        repository_id: int,
        data: ActivityData,
        *,
        author_id: int | None = None,
        merged_by_id: int | None = None,
    ) -> tuple[Activity, bool]:
        """Insert or update a pull request keyed by GitHub id.

        Line statistics missing from ``data`` leave the stored values alone.

        Returns:
            Tuple of (activity, created)
        """
        activity = await self.get_by_external_id(data.external_id)
        if activity is None:
            activity = await self.get_by_number(repository_id, data.number)

        created = activity is None
        if activity is None:
            activity = self.add(
                Activity(
                    external_id=data.external_id,
                    repository_id=repository_id,
                    number=data.number,
                    title=data.title,
                    github_created_at=data.created_at,
                    github_updated_at=data.updated_at,
                )
            )

        self._apply(
            activity,
            {
                "external_id": data.external_id,
                "repository_id": repository_id,
                "number": data.number,
                "title": data.title,
                "body": data.body,
                "state": data.state,
                "merged": data.merged,
                "is_draft": data.is_draft,
                "base_branch": data.base_branch,
                "head_branch": data.head_branch,
                "labels": list(data.labels),
                "github_created_at": data.created_at,
                "github_updated_at": data.updated_at,
                "closed_at": data.closed_at,
                "merged_at": data.merged_at,
                "last_sync_at": utc_now(),
            },
        )
        if author_id is not None:
            activity.author_id = author_id
        if merged_by_id is not None:
            activity.merged_by_id = merged_by_id
        for field in ("additions", "deletions", "changed_files"):
            value = getattr(data, field)
            if value is not None:
                setattr(activity, field, value)

        await self.flush()
        return activity, created

    # -------------------------------------------------------------------------
    # Derived Counters
    # -------------------------------------------------------------------------

    async def reconcile_counters(self, activity: Activity) -> Activity:
        """Recompute counters and timings from persisted child rows.

        - reviews_count / comments_count / commits_count count stored rows
        - time_to_first_review: minutes until the first non-pending review
          by someone other than the author
        - time_to_merge: minutes from creation to merge
        """
        await self.flush()
        activity.reviews_count = await self._scalar_count(
            select(func.count()).select_from(Review).where(Review.activity_id == activity.id)
        )
        activity.comments_count = await self._scalar_count(
            select(func.count()).select_from(Comment).where(Comment.activity_id == activity.id)
        )
        activity.commits_count = await self._scalar_count(
            select(func.count())
            .select_from(activity_commits)
            .where(activity_commits.c.activity_id == activity.id)
        )

        first_review = select(func.min(Review.submitted_at)).where(
            Review.activity_id == activity.id,
            Review.state != ReviewState.PENDING,
            Review.submitted_at.is_not(None),
        )
        if activity.author_id is not None:
            first_review = first_review.where(
                (Review.reviewer_id.is_(None)) | (Review.reviewer_id != activity.author_id)
            )
        first_review_at = (await self._session.execute(first_review)).scalar()

        activity.time_to_first_review = _minutes_between(
            activity.github_created_at, first_review_at
        )
        activity.time_to_merge = _minutes_between(activity.github_created_at, activity.merged_at)

        await self.flush()
        return activity

    async def _scalar_count(self, stmt: object) -> int:
        result = await self._session.execute(stmt)  # type: ignore[arg-type]
        return result.scalar() or 0
