"""Repository for Review model CRUD operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from github_team_metrics.db.models import Review

from .base import BaseRepository

if TYPE_CHECKING:
    from github_team_metrics.schemas.canonical import ReviewData


class ReviewRepository(BaseRepository[Review]):
    """Repository for pull request reviews."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Review)

    async def get_by_external_id(self, external_id: int) -> Review | None:
        return await self._get_by_field("external_id", external_id)

    async def list_for_activity(self, activity_id: int) -> list[Review]:
        stmt = select(Review).where(Review.activity_id == activity_id).order_by(Review.id)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def upsert(
        self,
        activity_id: int,
        data: ReviewData,
        *,
        reviewer_id: int | None = None,
    ) -> tuple[Review, bool]:
        """Insert or update a review keyed by GitHub id.

        Returns:
            Tuple of (review, created)
        """
        review = await self.get_by_external_id(data.external_id)
        created = review is None
        if review is None:
            review = self.add(Review(external_id=data.external_id, activity_id=activity_id))

        self._apply(
            review,
            {
                "activity_id": activity_id,
                "reviewer_id": reviewer_id,
                "state": data.state,
                "body": data.body,
                "submitted_at": data.submitted_at,
            },
        )
        await self.flush()
        return review, created
