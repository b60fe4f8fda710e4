"""Repository for Comment model CRUD operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from github_team_metrics.db.models import Comment

from .base import BaseRepository

if TYPE_CHECKING:
    from github_team_metrics.schemas.canonical import CommentData


class CommentRepository(BaseRepository[Comment]):
    """Repository for conversation and inline review comments."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Comment)

    async def get_by_external_id(self, external_id: int) -> Comment | None:
        return await self._get_by_field("external_id", external_id)

    async def upsert(
        self,
        activity_id: int,
        data: CommentData,
        *,
        author_id: int | None = None,
        review_id: int | None = None,
    ) -> tuple[Comment, bool]:
        """Insert or update a comment keyed by GitHub id.

        Args:
            activity_id: Owning pull request
            data: Comment payload
            author_id: Local actor id of the author
            review_id: Local review id for inline comments left as part of a review

        Returns:
            Tuple of (comment, created)
        """
        comment = await self.get_by_external_id(data.external_id)
        created = comment is None
        if comment is None:
            comment = self.add(
                Comment(
                    external_id=data.external_id,
                    activity_id=activity_id,
                    type=data.type,
                    github_created_at=data.created_at,
                )
            )

        self._apply(
            comment,
            {
                "activity_id": activity_id,
                "review_id": review_id,
                "author_id": author_id,
                "type": data.type,
                "body": data.body,
                "path": data.path,
                "line": data.line,
                "reactions": dict(data.reactions),
                "word_count": data.word_count,
                "github_created_at": data.created_at,
                "github_updated_at": data.updated_at,
            },
        )
        await self.flush()
        return comment, created
