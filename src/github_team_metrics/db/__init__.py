"""Database module for GitHub Team Metrics."""

from github_team_metrics.db.engine import (
    create_engine_for_url,
    create_session_factory,
    create_tables,
    dispose_engine,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
)
from github_team_metrics.db.models import (
    Activity,
    ActivityState,
    Actor,
    Base,
    Comment,
    CommentType,
    Commit,
    MetricSample,
    MetricType,
    Repository,
    Review,
    ReviewState,
    activity_commits,
)
from github_team_metrics.db.repositories import (
    ActivityRepository,
    ActorRepository,
    BaseRepository,
    CommentRepository,
    CommitRepository,
    MetricSampleRepository,
    RepositoryRepository,
    ReviewRepository,
)

__all__ = [
    # Models
    "Activity",
    "ActivityState",
    "Actor",
    "Base",
    "Comment",
    "CommentType",
    "Commit",
    "MetricSample",
    "MetricType",
    "Repository",
    "Review",
    "ReviewState",
    "activity_commits",
    # Engine
    "create_engine_for_url",
    "create_session_factory",
    "create_tables",
    "dispose_engine",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    # Repositories
    "ActivityRepository",
    "ActorRepository",
    "BaseRepository",
    "CommentRepository",
    "CommitRepository",
    "MetricSampleRepository",
    "RepositoryRepository",
    "ReviewRepository",
]
