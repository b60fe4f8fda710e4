"""Pydantic schemas for parsing GitHub GraphQL responses.

GraphQL names fields in camelCase, identifies records by ``databaseId``
and reports merge state as an enum. These models read those payloads
and convert them into the same canonical shapes the REST adapter produces.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from github_team_metrics.db.models import ActivityState

from .canonical import ActivityData, ActorData

PULL_REQUESTS_QUERY = """
query PullRequests($owner: String!, $name: String!, $first: Int!, $after: String) {
  repository(owner: $owner, name: $name) {
    pullRequests(first: $first, after: $after, orderBy: {field: UPDATED_AT, direction: DESC}) {
      pageInfo { hasNextPage endCursor }
      nodes {
        databaseId
        number
        title
        body
        state
        isDraft
        merged
        createdAt
        updatedAt
        closedAt
        mergedAt
        additions
        deletions
        changedFiles
        baseRefName
        headRefName
        author { login ... on User { databaseId name } ... on Bot { databaseId } }
        mergedBy { login ... on User { databaseId name } ... on Bot { databaseId } }
        labels(first: 20) { nodes { name color } }
      }
    }
  }
}
"""

PULL_REQUESTS_CONNECTION = ("repository", "pullRequests")


class _GraphModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class GraphActor(_GraphModel):
    """``Actor`` interface node; databaseId is missing for some actor types."""

    login: str
    database_id: int | None = Field(default=None, alias="databaseId")
    name: str | None = None

    def to_actor_data(self) -> ActorData:
        return ActorData(username=self.login, external_id=self.database_id, name=self.name)


class GraphLabel(_GraphModel):
    name: str
    color: str | None = None


class GraphLabelConnection(_GraphModel):
    nodes: list[GraphLabel] = Field(default_factory=list)


class GraphPullRequest(_GraphModel):
    """``PullRequest`` node from the PULL_REQUESTS_QUERY."""

    database_id: int = Field(alias="databaseId")
    number: int
    title: str
    body: str | None = None
    state: str = Field(description="OPEN, CLOSED or MERGED")
    is_draft: bool = Field(default=False, alias="isDraft")
    merged: bool = False
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    closed_at: datetime | None = Field(default=None, alias="closedAt")
    merged_at: datetime | None = Field(default=None, alias="mergedAt")
    additions: int | None = None
    deletions: int | None = None
    changed_files: int | None = Field(default=None, alias="changedFiles")
    base_ref_name: str | None = Field(default=None, alias="baseRefName")
    head_ref_name: str | None = Field(default=None, alias="headRefName")
    author: GraphActor | None = None
    merged_by: GraphActor | None = Field(default=None, alias="mergedBy")
    labels: GraphLabelConnection = Field(default_factory=GraphLabelConnection)

    def to_activity_data(self) -> ActivityData:
        return ActivityData(
            external_id=self.database_id,
            number=self.number,
            title=self.title,
            body=self.body,
            state=ActivityState(self.state.lower()),
            merged=self.merged,
            is_draft=self.is_draft,
            author=self.author.to_actor_data() if self.author else None,
            merged_by=self.merged_by.to_actor_data() if self.merged_by else None,
            base_branch=self.base_ref_name,
            head_branch=self.head_ref_name,
            additions=self.additions,
            deletions=self.deletions,
            changed_files=self.changed_files,
            labels=[label.model_dump() for label in self.labels.nodes],
            created_at=self.created_at,
            updated_at=self.updated_at,
            closed_at=self.closed_at,
            merged_at=self.merged_at,
        )


def extract_connection(data: dict[str, Any], path: tuple[str, ...]) -> dict[str, Any]:
    """Walk ``path`` into a GraphQL ``data`` object to reach a connection.

    Raises:
        KeyError: If a path segment is missing or null
    """
    node: Any = data
    for key in path:
        if not isinstance(node, dict) or node.get(key) is None:
            raise KeyError(f"GraphQL response missing '{'.'.join(path)}'")
        node = node[key]
    return node
