"""Repository for GitHub Repository model CRUD operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from github_team_metrics.db.models import Repository
from github_team_metrics.schemas.base import utc_now

from .base import BaseRepository

if TYPE_CHECKING:
    from github_team_metrics.schemas.canonical import RepositoryData


class RepositoryRepository(BaseRepository[Repository]):
    """Repository for tracked GitHub repositories."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Repository)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_by_full_name(self, full_name: str) -> Repository | None:
        """Get a repository by its full name (owner/repo).

        Args:
            full_name: Full repository name (e.g., "octo/widgets")

        Returns:
            Repository or None if not found
        """
        return await self._get_by_field("full_name", full_name)

    async def get_by_external_id(self, external_id: int) -> Repository | None:
        return await self._get_by_field("external_id", external_id)

    async def get_active(self, full_names: list[str] | None = None) -> list[Repository]:
        """Get active repositories, optionally restricted to ``full_names``.

        Returns:
            Active repositories ordered by full name
        """
        stmt = select(Repository).where(Repository.is_active.is_(True))
        if full_names:
            stmt = stmt.where(Repository.full_name.in_(full_names))
        result = await self._session.execute(stmt.order_by(Repository.full_name))
        return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Create/Update Methods
    # -------------------------------------------------------------------------

    async def upsert(
        self,
        data: RepositoryData,
        languages: dict[str, int] | None = None,
    ) -> tuple[Repository, bool]:
        """Insert or update a repository keyed by GitHub id.

        Args:
            data: Repository payload
            languages: Language breakdown in bytes (kept as-is when None)

        Returns:
            Tuple of (repository, created)
        """
        repo = await self.get_by_external_id(data.external_id)
        if repo is None:
            repo = await self.get_by_full_name(data.full_name)

        created = repo is None
        if repo is None:
            repo = self.add(
                Repository(
                    external_id=data.external_id,
                    owner=data.owner,
                    name=data.name,
                    full_name=data.full_name,
                )
            )

        self._apply(
            repo,
            {
                "external_id": data.external_id,
                "owner": data.owner,
                "name": data.name,
                "full_name": data.full_name,
                "description": data.description,
                "language": data.language,
                "topics": list(data.topics),
                "is_private": data.is_private,
                "is_fork": data.is_fork,
                "is_active": data.is_active,
                "default_branch": data.default_branch,
                "stars_count": data.stars_count,
                "forks_count": data.forks_count,
                "open_issues_count": data.open_issues_count,
                "github_created_at": data.created_at,
                "github_updated_at": data.updated_at,
                "pushed_at": data.pushed_at,
                "last_sync_at": utc_now(),
            },
        )
        if languages is not None:
            repo.languages = dict(languages)

        await self.flush()
        return repo, created

    async def mark_synced(self, repository: Repository) -> Repository:
        """Stamp ``last_sync_at`` after the repository's activities were synced."""
        repository.last_sync_at = utc_now()
        await self.flush()
        return repository
