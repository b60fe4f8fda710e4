"""Tests for MetricSampleRepository and scope keys."""

from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from github_team_metrics.db.models import MetricSample, MetricType
from github_team_metrics.db.repositories import MetricSampleRepository, scope_key_for
from tests.factories import make_actor, make_repository

PERIOD_START = datetime(2024, 10, 1)
PERIOD_END = datetime(2024, 10, 2)


def sample_values(**overrides):
    values = {
        "actor_id": None,
        "repository_id": None,
        "metric_type": MetricType.DAILY,
        "metric_name": "team_aggregate",
        "period_start": PERIOD_START,
        "period_end": PERIOD_END,
        "calculated_at": PERIOD_END,
        "pull_requests_opened": 3,
    }
    values.update(overrides)
    return values


@pytest.mark.parametrize(
    ("actor_id", "repository_id", "expected"),
    [
        (5, None, "actor:5"),
        (None, 3, "repository:3"),
        (5, 3, "actor:5:repository:3"),
        (None, None, "team"),
    ],
)
def test_scope_key_for(actor_id, repository_id, expected):
    assert scope_key_for(actor_id, repository_id) == expected


class TestMetricSampleRepository:
    async def test_save_and_get_by_natural_key(self, db_session):
        repository = MetricSampleRepository(db_session)
        saved = await repository.save(sample_values())

        found = await repository.get_by_natural_key(
            actor_id=None,
            repository_id=None,
            metric_type=MetricType.DAILY,
            metric_name="team_aggregate",
            period_start=PERIOD_START,
        )

        assert found is not None
        assert found.id == saved.id
        assert found.scope_key == "team"

    async def test_save_overwrites_existing(self, db_session):
        repository = MetricSampleRepository(db_session)
        existing = await repository.save(sample_values())

        updated = await repository.save(sample_values(pull_requests_opened=9), existing)

        assert updated.id == existing.id
        assert updated.pull_requests_opened == 9
        assert await repository.count() == 1

    async def test_team_samples_collide_on_natural_key(self, db_session):
        """Null scope columns still form a unique key through scope_key."""
        repository = MetricSampleRepository(db_session)
        await repository.save(sample_values())

        db_session.add(MetricSample(scope_key="team", **sample_values()))
        with pytest.raises(IntegrityError):
            await db_session.flush()

    async def test_list_samples_filters(self, db_session):
        actor = make_actor(db_session)
        repo = make_repository(db_session)
        await db_session.flush()
        repository = MetricSampleRepository(db_session)
        await repository.save(sample_values(actor_id=actor.id, metric_name="actor_activity"))
        await repository.save(
            sample_values(repository_id=repo.id, metric_name="repository_activity")
        )
        await repository.save(sample_values())

        by_actor = await repository.list_samples(actor_id=actor.id)
        by_name = await repository.list_samples(metric_name="repository_activity")
        daily = await repository.list_samples(metric_type=MetricType.DAILY)

        assert [s.scope_key for s in by_actor] == [f"actor:{actor.id}"]
        assert [s.repository_id for s in by_name] == [repo.id]
        assert len(daily) == 3
