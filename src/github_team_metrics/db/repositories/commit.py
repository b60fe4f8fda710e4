"""Repository for Commit model CRUD operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from github_team_metrics.db.models import Activity, Commit, activity_commits
from github_team_metrics.schemas.base import utc_now

from .base import BaseRepository

if TYPE_CHECKING:
    from github_team_metrics.schemas.canonical import CommitData


class CommitRepository(BaseRepository[Commit]):
    """Repository for git commits and their pull request links."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Commit)

    async def get_by_sha(self, sha: str) -> Commit | None:
        return await self._get_by_field("sha", sha)

    async def upsert(
        self,
        repository_id: int,
        data: CommitData,
        *,
        author_id: int | None = None,
        committer_id: int | None = None,
    ) -> tuple[Commit, bool]:
        """Insert or update a commit keyed by sha.

        Missing line statistics leave the stored values alone.

        Returns:
            Tuple of (commit, created)
        """
        commit = await self.get_by_sha(data.sha)
        created = commit is None
        if commit is None:
            commit = self.add(Commit(sha=data.sha, repository_id=repository_id))

        self._apply(
            commit,
            {
                "repository_id": repository_id,
                "message": data.message,
                "author_name": data.author_name,
                "author_email": data.author_email,
                "authored_at": data.authored_at,
                "committed_at": data.committed_at,
                "url": data.url,
                "last_sync_at": utc_now(),
            },
        )
        if author_id is not None:
            commit.author_id = author_id
        if committer_id is not None:
            commit.committer_id = committer_id
        for field in ("additions", "deletions", "changed_files"):
            value = getattr(data, field)
            if value is not None:
                setattr(commit, field, value)

        await self.flush()
        return commit, created

    async def link_to_activity(self, commit: Commit, activity: Activity) -> bool:
        """Record that ``commit`` belongs to ``activity``.

        Returns:
            True if the link was new
        """
        await self.flush()
        existing = await self._session.execute(
            select(activity_commits.c.commit_id).where(
                activity_commits.c.activity_id == activity.id,
                activity_commits.c.commit_id == commit.id,
            )
        )
        if existing.first() is not None:
            return False
        await self._session.execute(
            insert(activity_commits).values(activity_id=activity.id, commit_id=commit.id)
        )
        return True
