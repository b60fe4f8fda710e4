"""Sync a small organization, then roll the stored activity up into samples."""

from datetime import UTC, datetime

import pytest
from sqlalchemy import select

from github_team_metrics.db.models import Actor, MetricType, Repository
from github_team_metrics.db.repositories import MetricSampleRepository
from github_team_metrics.github.sync import SyncOptions, SyncOrchestrator
from github_team_metrics.metrics import MetricsEngine, MetricsOptions
from tests.fakes import FakeGitHubClient, build_small_org

DAY_START = datetime(2024, 10, 1, tzinfo=UTC)
DAY_END = datetime(2024, 10, 2, tzinfo=UTC)


@pytest.fixture
async def synced(session_factory, test_settings):
    client = build_small_org(FakeGitHubClient())
    result = await SyncOrchestrator(client, session_factory, test_settings).sync(
        SyncOptions(since=datetime(2024, 9, 30, tzinfo=UTC))
    )
    assert result.success is True
    assert result.errors == []
    return result


@pytest.fixture
def engine(session_factory, test_settings) -> MetricsEngine:
    return MetricsEngine(session_factory, test_settings)


async def test_repository_daily_sample(synced, engine, session_factory) -> None:
    async with session_factory() as session:
        repo_id = (await session.execute(select(Repository.id))).scalar_one()

    result = await engine.calculate_metrics(
        MetricsOptions(
            metric_type=MetricType.DAILY,
            start=DAY_START,
            end=DAY_END,
            repository_id=repo_id,
        )
    )

    assert result.success is True
    assert result.periods == 1
    assert result.samples_created == 1

    async with session_factory() as session:
        [sample] = await MetricSampleRepository(session).list_samples(repository_id=repo_id)

    assert sample.metric_name == "repository_activity"
    assert sample.pull_requests_opened == 2
    assert sample.pull_requests_merged == 1
    assert sample.merge_rate == 50.0
    assert sample.reviews_given == 2
    assert sample.comments_given == 3
    assert sample.commits_count == 2
    assert sample.avg_time_to_merge == 360.0
    assert sample.avg_time_to_first_review == 180.0
    assert sample.avg_reviews_per_pr == 1.0
    assert sample.approval_rate == 50.0
    assert sample.velocity_score is not None


async def test_actor_sample_separates_given_and_received(
    synced, engine, session_factory
) -> None:
    async with session_factory() as session:
        alice = (
            await session.execute(select(Actor).where(Actor.username == "alice"))
        ).scalar_one()

    await engine.calculate_metrics(
        MetricsOptions(metric_type="daily", start=DAY_START, end=DAY_END, actor_id=alice.id)
    )

    async with session_factory() as session:
        [sample] = await MetricSampleRepository(session).list_samples(actor_id=alice.id)

    assert sample.metric_name == "actor_activity"
    assert sample.pull_requests_opened == 1
    assert sample.pull_requests_merged == 1
    assert sample.reviews_given == 0
    assert sample.reviews_received == 2
    assert sample.comments_received == 3
    assert sample.commits_count == 1
    assert sample.unique_collaborators == 2  # bob and carol reviewed
    assert sample.velocity_score is None


async def test_every_scope_once_then_skipped(synced, engine) -> None:
    options = MetricsOptions(metric_type="daily", start=DAY_START, end=DAY_END)

    first = await engine.calculate_metrics(options)
    second = await engine.calculate_metrics(options)
    recalculated = await engine.calculate_metrics(
        MetricsOptions(metric_type="daily", start=DAY_START, end=DAY_END, recalculate=True)
    )

    # alice, bob, carol + the repository + the team
    assert first.scopes == 5
    assert first.samples_created == 5
    assert second.samples_created == 0
    assert second.samples_skipped == 5
    assert recalculated.samples_updated == 5
