"""Repository for Actor model CRUD operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from github_team_metrics.db.models import Actor
from github_team_metrics.schemas.base import utc_now

from .base import BaseRepository

if TYPE_CHECKING:
    from github_team_metrics.schemas.canonical import ActorData

# Profile fields copied from ActorData; None never overwrites a stored value
_PROFILE_FIELDS = ("name", "email", "avatar_url", "company", "location", "bio")


class ActorRepository(BaseRepository[Actor]):
    """Repository for GitHub users (authors, reviewers, committers)."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Actor)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_by_username(self, username: str) -> Actor | None:
        return await self._get_by_field("username", username)

    async def get_by_external_id(self, external_id: int) -> Actor | None:
        return await self._get_by_field("external_id", external_id)

    async def get_active(self) -> list[Actor]:
        """All active actors, ordered by username."""
        stmt = select(Actor).where(Actor.is_active.is_(True)).order_by(Actor.username)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Upsert
    # -------------------------------------------------------------------------

    async def upsert(self, data: ActorData) -> tuple[Actor, bool]:
        """Insert or update an actor keyed by GitHub user id.

        Falls back to a username match so a renamed account keeps its row.

        Args:
            data: Actor payload; must carry ``external_id``

        Returns:
            Tuple of (actor, created)

        Raises:
            ValueError: If the payload has no external_id
        """
        if data.external_id is None:
            raise ValueError(f"Cannot store actor '{data.username}' without a GitHub id")

        actor = await self.get_by_external_id(data.external_id)
        if actor is None:
            actor = await self.get_by_username(data.username)

        created = actor is None
        if actor is None:
            actor = self.add(Actor(external_id=data.external_id, username=data.username))

        actor.external_id = data.external_id
        actor.username = data.username
        for field in _PROFILE_FIELDS:
            value = getattr(data, field)
            if value is not None:
                setattr(actor, field, value)
        actor.last_sync_at = utc_now()

        await self.flush()
        return actor, created
