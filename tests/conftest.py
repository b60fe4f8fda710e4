"""Pytest configuration and shared fixtures.

Usage Guide:
- For repository/ORM tests: use db_session and the model factories in tests.factories
- For sync tests: use session_factory + test_settings with tests.fakes.FakeGitHubClient
- For GitHub client tests: use the REST payload factories in tests.factories
"""

from datetime import UTC, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from github_team_metrics.config import (
    RateLimitConfig,
    RetryConfig,
    SchedulerConfig,
    Settings,
    SyncConfig,
)
from github_team_metrics.db.engine import (
    create_engine_for_url,
    create_session_factory,
    create_tables,
)

# -----------------------------------------------------------------------------
# Test Timeline Constants
#
# A fixed "test epoch" keeps date matching deterministic. Values are aware
# UTC; payload factories render them as GitHub ISO strings.
# -----------------------------------------------------------------------------
OCT_01 = datetime(2024, 10, 1, 9, 0, 0, tzinfo=UTC)  # PR opened
OCT_01_NOON = datetime(2024, 10, 1, 12, 0, 0, tzinfo=UTC)  # First review
OCT_02 = datetime(2024, 10, 2, 10, 0, 0, tzinfo=UTC)  # Second review, comments
OCT_03 = datetime(2024, 10, 3, 9, 0, 0, tzinfo=UTC)  # PR merged
OCT_05 = datetime(2024, 10, 5, 16, 0, 0, tzinfo=UTC)  # Last update

OCT_01_ISO = "2024-10-01T09:00:00Z"
OCT_03_ISO = "2024-10-03T09:00:00Z"
OCT_05_ISO = "2024-10-05T16:00:00Z"

TEST_ORG = "octo"


# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------
@pytest.fixture
def test_settings() -> Settings:
    """Settings with courtesy delays and retries tuned for fast tests."""
    return Settings(
        github_token="test-token",
        organization=TEST_ORG,
        database_url="sqlite+aiosqlite:///:memory:",
        rate_limit=RateLimitConfig(low_water_mark=10),
        retry=RetryConfig(max_retries=3, backoff_base_seconds=1.0, backoff_max_seconds=8.0),
        sync=SyncConfig(
            default_window_days=90,
            page_delay_ms=0,
            activity_delay_ms=0,
            repository_delay_ms=0,
        ),
        scheduler=SchedulerConfig(restart_delay_seconds=0.0),
    )


# -----------------------------------------------------------------------------
# Database Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
async def test_engine():
    """Create an in-memory SQLite engine for tests.

    Each test gets a fresh database with all tables created.
    """
    engine = create_engine_for_url("sqlite+aiosqlite:///:memory:")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the test engine (for orchestrator/engine tests)."""
    return create_session_factory(test_engine)


@pytest.fixture
async def db_session(session_factory) -> AsyncSession:
    """Create an async session with auto-rollback.

    Changes are rolled back after each test to ensure isolation.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()
