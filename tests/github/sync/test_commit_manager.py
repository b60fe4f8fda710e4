"""Unit tests for CommitManager commit boundaries."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from github_team_metrics.github.sync import CommitManager


@pytest.fixture
def session() -> MagicMock:
    mock = MagicMock()
    mock.commit = AsyncMock()
    mock.rollback = AsyncMock()
    return mock


class TestCommitManager:
    async def test_batch_size_one_commits_every_entity(self, session) -> None:
        manager = CommitManager(session, batch_size=1)

        assert await manager.record_success() == 1
        assert await manager.record_success() == 1

        assert session.commit.await_count == 2
        assert manager.total_committed == 2
        assert manager.uncommitted_count == 0

    async def test_commits_when_batch_fills(self, session) -> None:
        manager = CommitManager(session, batch_size=3)

        await manager.record_success()
        await manager.record_success()
        session.commit.assert_not_awaited()

        assert await manager.record_success() == 3
        session.commit.assert_awaited_once()

    async def test_rollback_discards_pending_batch(self, session) -> None:
        manager = CommitManager(session, batch_size=5)
        await manager.record_success()
        await manager.record_success()

        assert await manager.rollback() == 2

        session.rollback.assert_awaited_once()
        assert manager.uncommitted_count == 0
        assert manager.total_discarded == 2
        assert manager.total_committed == 0

    async def test_finalize_commits_remainder(self, session) -> None:
        manager = CommitManager(session, batch_size=10)
        await manager.record_success()

        assert await manager.finalize() == 1
        session.commit.assert_awaited_once()

    async def test_commit_with_nothing_recorded_still_commits_session(self, session) -> None:
        manager = CommitManager(session)

        assert await manager.commit() == 0
        session.commit.assert_awaited_once()
