"""Tests for the canonical schemas and their helpers."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from github_team_metrics.db.models import ActivityState
from github_team_metrics.schemas import (
    ActivityData,
    ActorData,
    CommitData,
    RepositoryData,
    as_naive_utc,
    count_words,
    parse_repo_string,
)

CREATED = datetime(2024, 10, 1, 9, 0, tzinfo=UTC)
UPDATED = datetime(2024, 10, 2, 9, 0, tzinfo=UTC)


def activity(**overrides) -> ActivityData:
    values = {
        "external_id": 1,
        "number": 1,
        "title": "Title",
        "created_at": CREATED,
        "updated_at": UPDATED,
    }
    values.update(overrides)
    return ActivityData(**values)


class TestHelpers:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            (None, 0),
            ("", 0),
            ("   ", 0),
            ("LGTM", 1),
            ("Please  add\na test\tfor this", 6),
        ],
    )
    def test_count_words(self, text, expected):
        assert count_words(text) == expected

    def test_parse_repo_string(self):
        assert parse_repo_string(" octo/widgets ") == ("octo", "widgets")

    @pytest.mark.parametrize("value", ["widgets", "octo/", "/widgets", "a/b/c", ""])
    def test_parse_repo_string_rejects(self, value):
        with pytest.raises(ValueError, match="owner/name"):
            parse_repo_string(value)

    def test_as_naive_utc(self):
        plus_two = timezone(timedelta(hours=2))
        assert as_naive_utc(datetime(2024, 10, 1, 11, 0, tzinfo=plus_two)) == datetime(
            2024, 10, 1, 9, 0
        )
        assert as_naive_utc(datetime(2024, 10, 1, 9, 0)) == datetime(2024, 10, 1, 9, 0)
        assert as_naive_utc(None) is None


class TestActivityData:
    def test_datetimes_stored_naive(self):
        data = activity()
        assert data.created_at == datetime(2024, 10, 1, 9, 0)
        assert data.created_at.tzinfo is None

    def test_merged_at_forces_merged_state(self):
        data = activity(state=ActivityState.CLOSED, merged_at=UPDATED)
        assert data.merged is True
        assert data.state == ActivityState.MERGED

    def test_merged_flag_without_timestamp_backfills_merged_at(self):
        data = activity(state=ActivityState.CLOSED, merged=True, closed_at=UPDATED)
        assert data.merged_at == datetime(2024, 10, 2, 9, 0)
        assert data.state == ActivityState.MERGED

    def test_merged_state_without_merge_becomes_closed(self):
        data = activity(state=ActivityState.MERGED)
        assert data.merged is False
        assert data.state == ActivityState.CLOSED

    def test_has_stats(self):
        assert activity(additions=1, deletions=0, changed_files=1).has_stats is True
        assert activity(additions=1).has_stats is False

    def test_number_must_be_positive(self):
        with pytest.raises(ValidationError):
            activity(number=0)


class TestOtherShapes:
    def test_actor_completeness(self):
        assert ActorData(username="alice", external_id=1).is_complete is True
        assert ActorData(username="ghost").is_complete is False

    def test_repository_active(self):
        base = {"external_id": 1, "owner": "octo", "name": "w", "full_name": "octo/w"}
        assert RepositoryData(**base).is_active is True
        assert RepositoryData(**base, is_archived=True).is_active is False
        assert RepositoryData(**base, is_disabled=True).is_active is False

    def test_commit_sha_length(self):
        with pytest.raises(ValidationError):
            CommitData(sha="abc")
        assert CommitData(sha="abcdef1").has_stats is False
