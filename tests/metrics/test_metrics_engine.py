"""Tests for MetricsEngine over seeded rows."""

import asyncio
from datetime import datetime
from unittest.mock import patch

import pytest

from github_team_metrics.db.models import ActivityState, CommentType, MetricType, Repository
from github_team_metrics.db.repositories import MetricSampleRepository
from github_team_metrics.metrics import MetricsEngine, MetricsOptions
from github_team_metrics.metrics import engine as engine_module
from github_team_metrics.metrics.engine import BUSY_MESSAGE
from tests.conftest import OCT_01, OCT_01_NOON, OCT_02, OCT_03
from tests.factories import (
    make_activity,
    make_actor,
    make_comment,
    make_commit,
    make_repository,
    make_review,
)

WEEK_START = datetime(2024, 9, 29)  # Sunday
WEEK_END = datetime(2024, 10, 6)


@pytest.fixture
async def seeded(session_factory):
    """Two repositories, three actors, activity in the week of 2024-09-29.

    widgets: PR 1 by alice merged OCT_03 (reviewed by bob), PR 2 by bob closed.
    gadgets: PR 3 by alice, open, no reviews.
    """
    async with session_factory() as session:
        widgets = make_repository(session, name="widgets", external_id=1)
        gadgets = make_repository(session, name="gadgets", external_id=2)
        alice = make_actor(session, username="alice")
        bob = make_actor(session, username="bob")
        carol = make_actor(session, username="carol")
        await session.flush()

        merged = make_activity(
            session,
            widgets,
            number=1,
            author=alice,
            merged_at=OCT_03,
            additions=100,
            time_to_first_review=180,
            time_to_merge=2880,
            reviews_count=1,
            comments_count=2,
        )
        make_activity(
            session,
            widgets,
            number=2,
            author=bob,
            state=ActivityState.CLOSED,
            created_at=OCT_02,
            closed_at=OCT_03,
        )
        make_activity(session, gadgets, number=3, external_id=7003, author=alice)
        await session.flush()

        review = make_review(session, merged, external_id=1, reviewer=bob, submitted_at=OCT_01_NOON)
        await session.flush()
        make_comment(session, merged, external_id=1, author=bob, created_at=OCT_02)
        make_comment(
            session,
            merged,
            external_id=2,
            author=carol,
            type=CommentType.REVIEW_LINE,
            review=review,
            created_at=OCT_02,
        )
        make_commit(session, widgets, sha="a" * 40, author=alice, committed_at=OCT_01)
        make_commit(session, gadgets, sha="b" * 40, author=alice, committed_at=OCT_02)
        await session.commit()
        return {
            "widgets": widgets.id,
            "gadgets": gadgets.id,
            "alice": alice.id,
            "bob": bob.id,
            "carol": carol.id,
        }


@pytest.fixture
def engine(session_factory, test_settings) -> MetricsEngine:
    return MetricsEngine(session_factory, test_settings)


def weekly(**overrides) -> MetricsOptions:
    return MetricsOptions(metric_type=MetricType.WEEKLY, start=WEEK_START, end=WEEK_END, **overrides)


async def samples(session_factory, **filters):
    async with session_factory() as session:
        return await MetricSampleRepository(session).list_samples(**filters)


class TestScopes:
    async def test_all_scopes(self, seeded, engine, session_factory):
        result = await engine.calculate_metrics(weekly())

        assert result.success is True
        assert result.periods == 1
        assert result.scopes == 3 + 2 + 1
        assert result.samples_created == 6
        names = sorted(s.metric_name for s in await samples(session_factory))
        assert names == ["actor_activity"] * 3 + ["repository_activity"] * 2 + ["team_aggregate"]

    async def test_team_sample(self, seeded, engine, session_factory):
        await engine.calculate_metrics(weekly())

        [team] = await samples(session_factory, metric_name="team_aggregate")
        assert team.actor_id is None and team.repository_id is None
        assert team.pull_requests_opened == 3
        assert team.pull_requests_merged == 1
        assert team.pull_requests_closed == 1
        assert team.commits_count == 2
        assert team.cross_repo_activity == 2
        assert team.unique_collaborators == 3
        assert team.period_start == WEEK_START
        assert team.period_end == WEEK_END

    async def test_actor_sample(self, seeded, engine, session_factory):
        await engine.calculate_metrics(weekly(actor_id=seeded["bob"]))

        [bob] = await samples(session_factory)
        assert bob.actor_id == seeded["bob"]
        assert bob.pull_requests_opened == 1
        assert bob.reviews_given == 1
        assert bob.reviews_received == 0
        assert bob.comments_given == 1
        assert bob.approval_rate == 100.0
        assert bob.avg_review_time == 180.0
        assert bob.velocity_score is None

    async def test_repository_sample(self, seeded, engine, session_factory):
        await engine.calculate_metrics(weekly(repository_id=seeded["widgets"]))

        [widgets] = await samples(session_factory)
        assert widgets.metric_name == "repository_activity"
        assert widgets.pull_requests_opened == 2
        assert widgets.merge_rate == 50.0
        assert widgets.lines_added == 100
        assert widgets.avg_time_to_merge == 2880.0
        assert widgets.avg_comments_per_review == 1.0
        assert widgets.commits_count == 1
        assert widgets.confidence > 0

    async def test_combined_scope(self, seeded, engine, session_factory):
        result = await engine.calculate_metrics(
            weekly(actor_id=seeded["alice"], repository_id=seeded["gadgets"])
        )

        assert result.scopes == 1
        [sample] = await samples(session_factory)
        assert sample.actor_id == seeded["alice"]
        assert sample.repository_id == seeded["gadgets"]
        assert sample.scope_key == f"actor:{seeded['alice']}:repository:{seeded['gadgets']}"
        assert sample.pull_requests_opened == 1
        assert sample.commits_count == 1

    async def test_commit_stats_count_towards_line_totals(self, engine, session_factory):
        async with session_factory() as session:
            repository = make_repository(session, name="tools", external_id=3)
            dave = make_actor(session, username="dave")
            await session.flush()
            make_commit(
                session,
                repository,
                sha="d" * 40,
                author=dave,
                committed_at=OCT_01,
                additions=120,
                deletions=30,
                changed_files=4,
            )
            await session.commit()
            dave_id = dave.id

        await engine.calculate_metrics(
            MetricsOptions(
                metric_type="daily",
                start=datetime(2024, 10, 1),
                end=datetime(2024, 10, 2),
                actor_id=dave_id,
            )
        )

        [sample] = await samples(session_factory)
        assert sample.pull_requests_opened == 0
        assert sample.commits_count == 1
        assert sample.lines_added == 120
        assert sample.lines_deleted == 30
        assert sample.files_changed == 4


class TestIdempotence:
    async def test_existing_samples_are_skipped(self, seeded, engine):
        await engine.calculate_metrics(weekly())
        again = await engine.calculate_metrics(weekly())

        assert again.samples_created == 0
        assert again.samples_skipped == 6

    async def test_recalculate_overwrites(self, seeded, engine, session_factory):
        await engine.calculate_metrics(weekly(repository_id=seeded["gadgets"]))
        async with session_factory() as session:
            gadgets = await session.get(Repository, seeded["gadgets"])
            make_commit(session, gadgets, sha="c" * 40, committed_at=OCT_03)
            await session.commit()

        result = await engine.calculate_metrics(
            weekly(repository_id=seeded["gadgets"], recalculate=True)
        )

        assert result.samples_updated == 1
        [sample] = await samples(session_factory)
        assert sample.commits_count == 2

    async def test_concurrent_call_is_busy(self, seeded, engine):
        first, second = await asyncio.gather(
            engine.calculate_metrics(weekly()), engine.calculate_metrics(weekly())
        )

        assert first.success is True
        assert second.success is False
        assert second.message == BUSY_MESSAGE
        assert engine.in_progress is False


class TestFailures:
    async def test_failing_period_is_recorded_and_others_continue(
        self, seeded, engine, session_factory
    ):
        original = engine_module.compute_aggregates

        async def flaky(session, scope, start, end):
            if start == datetime(2024, 10, 1):
                raise RuntimeError("aggregate failed")
            return await original(session, scope, start, end)

        with patch.object(engine_module, "compute_aggregates", flaky):
            result = await engine.calculate_metrics(
                MetricsOptions(
                    metric_type="daily",
                    start=datetime(2024, 9, 30),
                    end=datetime(2024, 10, 3),
                    repository_id=seeded["widgets"],
                )
            )

        assert result.success is True
        assert result.samples_created == 2
        assert result.errors == [
            f"repository {seeded['widgets']} 2024-10-01T00:00:00: aggregate failed"
        ]

    def test_invalid_metric_type(self):
        with pytest.raises(ValueError):
            MetricsOptions(metric_type="fortnightly")
