"""Pydantic schemas for GitHub Team Metrics.

- canonical: transport-independent shapes consumed by the sync orchestrator
- github_api: REST payload models with converters to the canonical shapes
- github_graphql: GraphQL payload models with converters to the canonical shapes
"""

from .base import SchemaBase, as_naive_utc, utc_now
from .canonical import (
    ActivityData,
    ActorData,
    CommentData,
    CommitData,
    Page,
    RepositoryData,
    ReviewData,
    count_words,
    parse_repo_string,
)
from .github_api import (
    GitHubCommit,
    GitHubIssueComment,
    GitHubPullRequest,
    GitHubRepository,
    GitHubReview,
    GitHubReviewComment,
    GitHubUser,
)
from .github_graphql import PULL_REQUESTS_QUERY, GraphPullRequest

__all__ = [
    # Base
    "SchemaBase",
    "as_naive_utc",
    "utc_now",
    # Canonical
    "ActivityData",
    "ActorData",
    "CommentData",
    "CommitData",
    "Page",
    "RepositoryData",
    "ReviewData",
    "count_words",
    "parse_repo_string",
    # REST
    "GitHubCommit",
    "GitHubIssueComment",
    "GitHubPullRequest",
    "GitHubRepository",
    "GitHubReview",
    "GitHubReviewComment",
    "GitHubUser",
    # GraphQL
    "PULL_REQUESTS_QUERY",
    "GraphPullRequest",
]
