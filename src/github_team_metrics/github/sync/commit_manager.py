"""Commit boundaries for sync runs.

Instead of committing everything at session exit (all-or-nothing), the
orchestrator records each processed entity and the manager commits every
``batch_size`` entities, so a crash loses at most the current batch.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from github_team_metrics.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class CommitManager:
    """Manages commit boundaries for one sync session.

    Usage:
        async with session_factory() as session:
            commit_manager = CommitManager(session, batch_size=1)

            # ... upsert one pull request with its reviews and comments ...
            await commit_manager.record_success()  # Auto-commits at batch_size

            await commit_manager.finalize()  # Commit remaining

    Attributes:
        uncommitted_count: Number of entities pending commit.
        total_committed: Total entities committed across all batches.
    """

    def __init__(self, session: AsyncSession, batch_size: int = 1) -> None:
        """Initialize the commit manager.

        Args:
            session: Async SQLAlchemy session to commit on.
            batch_size: Successful entities per commit. 1 commits every entity.
        """
        self._session = session
        self._batch_size = batch_size
        self._uncommitted_count = 0
        self._total_committed = 0
        self._total_discarded = 0

    @property
    def uncommitted_count(self) -> int:
        return self._uncommitted_count

    @property
    def total_committed(self) -> int:
        return self._total_committed

    @property
    def total_discarded(self) -> int:
        """Entities lost to rollbacks."""
        return self._total_discarded

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def record_success(self) -> int:
        """Record one processed entity, committing when the batch is full.

        Returns:
            Number of entities committed (0 if the batch is not full yet).
        """
        self._uncommitted_count += 1
        if self._uncommitted_count >= self._batch_size:
            return await self.commit()
        return 0

    async def commit(self) -> int:
        """Commit pending changes.

        Returns:
            Number of entities committed (0 if nothing to commit).
        """
        if self._uncommitted_count == 0:
            # Flushed-but-unrecorded writes (e.g. repository watermarks) still land
            await self._session.commit()
            return 0

        await self._session.commit()

        committed = self._uncommitted_count
        self._total_committed += committed
        self._uncommitted_count = 0

        logger.debug(
            "Committed batch of {} entities (total: {})",
            committed,
            self._total_committed,
        )
        return committed

    async def rollback(self) -> int:
        """Discard the failed entity together with the uncommitted batch.

        Returns:
            Number of previously recorded entities that were discarded.
        """
        await self._session.rollback()
        discarded = self._uncommitted_count
        if discarded:
            logger.warning("Rolled back {} uncommitted entities", discarded)
        self._total_discarded += discarded
        self._uncommitted_count = 0
        return discarded

    async def finalize(self) -> int:
        """Commit whatever is left at the end of a run."""
        return await self.commit()
