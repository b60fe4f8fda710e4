"""Tests for ActivityRepository: upsert and derived counters."""

from datetime import timedelta

from github_team_metrics.db.models import ActivityState, CommentType, ReviewState
from github_team_metrics.db.repositories import ActivityRepository, CommitRepository
from github_team_metrics.schemas.canonical import ActivityData
from tests.conftest import OCT_01, OCT_01_NOON, OCT_02, OCT_03
from tests.factories import (
    make_activity,
    make_actor,
    make_comment,
    make_commit,
    make_repository,
    make_review,
)


def activity_data(**overrides) -> ActivityData:
    values = {
        "external_id": 9001,
        "number": 1,
        "title": "Add widgets",
        "created_at": OCT_01,
        "updated_at": OCT_02,
        "additions": 10,
        "deletions": 2,
        "changed_files": 1,
    }
    values.update(overrides)
    return ActivityData(**values)


class TestActivityRepositoryUpsert:
    async def test_upsert_creates(self, db_session):
        repo = make_repository(db_session)
        await db_session.flush()

        activity, created = await ActivityRepository(db_session).upsert(repo.id, activity_data())

        assert created is True
        assert activity.state == ActivityState.OPEN
        assert activity.additions == 10
        assert activity.github_created_at == OCT_01.replace(tzinfo=None)

    async def test_upsert_updates_in_place(self, db_session):
        repo = make_repository(db_session)
        await db_session.flush()
        repository = ActivityRepository(db_session)
        first, _ = await repository.upsert(repo.id, activity_data())

        second, created = await repository.upsert(
            repo.id, activity_data(title="Add widgets (v2)", merged_at=OCT_03)
        )

        assert created is False
        assert second.id == first.id
        assert second.title == "Add widgets (v2)"
        assert second.state == ActivityState.MERGED
        assert second.merged is True
        assert await repository.count() == 1

    async def test_missing_stats_keep_stored_values(self, db_session):
        repo = make_repository(db_session)
        await db_session.flush()
        repository = ActivityRepository(db_session)
        await repository.upsert(repo.id, activity_data())

        activity, _ = await repository.upsert(
            repo.id, activity_data(additions=None, deletions=None, changed_files=None)
        )

        assert activity.additions == 10
        assert activity.deletions == 2

    async def test_author_is_not_cleared_by_unresolved_reference(self, db_session):
        repo = make_repository(db_session)
        alice = make_actor(db_session, username="alice")
        await db_session.flush()
        repository = ActivityRepository(db_session)
        await repository.upsert(repo.id, activity_data(), author_id=alice.id)

        activity, _ = await repository.upsert(repo.id, activity_data(), author_id=None)

        assert activity.author_id == alice.id


class TestReconcileCounters:
    async def test_counts_persisted_children(self, db_session):
        repo = make_repository(db_session)
        alice = make_actor(db_session, username="alice")
        bob = make_actor(db_session, username="bob")
        await db_session.flush()
        activity = make_activity(db_session, repo, author=alice, merged_at=OCT_03)
        await db_session.flush()

        review = make_review(db_session, activity, external_id=1, reviewer=bob, submitted_at=OCT_02)
        make_comment(db_session, activity, external_id=11, author=bob)
        make_comment(
            db_session, activity, external_id=12, author=bob, type=CommentType.REVIEW_LINE
        )
        make_comment(db_session, activity, external_id=13, author=bob)
        await db_session.flush()
        assert review.id is not None

        commit = make_commit(db_session, repo, author=alice)
        await db_session.flush()
        await CommitRepository(db_session).link_to_activity(commit, activity)

        result = await ActivityRepository(db_session).reconcile_counters(activity)

        assert result.reviews_count == 1
        assert result.comments_count == 3
        assert result.commits_count == 1
        assert result.time_to_first_review == 25 * 60  # OCT_01 09:00 -> OCT_02 10:00
        assert result.time_to_merge == 48 * 60

    async def test_first_review_ignores_author_and_pending(self, db_session):
        repo = make_repository(db_session)
        alice = make_actor(db_session, username="alice")
        bob = make_actor(db_session, username="bob")
        await db_session.flush()
        activity = make_activity(db_session, repo, author=alice)
        await db_session.flush()

        # Self-review and a pending review come first but don't count
        make_review(db_session, activity, external_id=1, reviewer=alice, submitted_at=OCT_01)
        make_review(
            db_session,
            activity,
            external_id=2,
            reviewer=bob,
            state=ReviewState.PENDING,
            submitted_at=OCT_01 + timedelta(minutes=30),
        )
        make_review(db_session, activity, external_id=3, reviewer=bob, submitted_at=OCT_01_NOON)
        await db_session.flush()

        result = await ActivityRepository(db_session).reconcile_counters(activity)

        assert result.reviews_count == 3
        assert result.time_to_first_review == 180

    async def test_no_children(self, db_session):
        repo = make_repository(db_session)
        await db_session.flush()
        activity = make_activity(db_session, repo)
        await db_session.flush()

        result = await ActivityRepository(db_session).reconcile_counters(activity)

        assert result.reviews_count == 0
        assert result.comments_count == 0
        assert result.commits_count == 0
        assert result.time_to_first_review is None
        assert result.time_to_merge is None
