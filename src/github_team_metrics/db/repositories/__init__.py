"""Repository pattern implementation for database access.

Each repository wraps one model and exposes keyed lookups plus an
``upsert`` that the sync orchestrator calls once per upstream record.
"""

from .activity import ActivityRepository
from .actor import ActorRepository
from .base import BaseRepository
from .comment import CommentRepository
from .commit import CommitRepository
from .metric_sample import MetricSampleRepository, scope_key_for
from .repository import RepositoryRepository
from .review import ReviewRepository

__all__ = [
    "ActivityRepository",
    "ActorRepository",
    "BaseRepository",
    "CommentRepository",
    "CommitRepository",
    "MetricSampleRepository",
    "RepositoryRepository",
    "ReviewRepository",
    "scope_key_for",
]
