"""Pydantic schemas for parsing GitHub REST API responses.

These schemas map directly to the REST payloads and each one knows how to
convert itself into the canonical shape (``to_*_data``). Unknown fields
are ignored.
See: https://docs.github.com/en/rest
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from github_team_metrics.db.models import ActivityState, CommentType, ReviewState

from .canonical import (
    ActivityData,
    ActorData,
    CommentData,
    CommitData,
    RepositoryData,
    ReviewData,
)


class _RestModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GitHubUser(_RestModel):
    """GitHub user object (embedded or from GET /users/{login})."""

    login: str = Field(description="GitHub username")
    id: int = Field(description="GitHub user ID")
    type: str = Field(default="User", description="User type")
    name: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    company: str | None = None
    location: str | None = None
    bio: str | None = None

    def to_actor_data(self) -> ActorData:
        return ActorData(
            username=self.login,
            external_id=self.id,
            name=self.name,
            email=self.email,
            avatar_url=self.avatar_url,
            company=self.company,
            location=self.location,
            bio=self.bio,
        )


class GitHubRepository(_RestModel):
    """GitHub repository from GET /orgs/{org}/repos."""

    id: int
    name: str
    full_name: str
    owner: GitHubUser
    description: str | None = None
    language: str | None = None
    topics: list[str] = Field(default_factory=list)
    private: bool = False
    fork: bool = False
    archived: bool = False
    disabled: bool = False
    default_branch: str | None = None
    stargazers_count: int = 0
    forks_count: int = 0
    open_issues_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    pushed_at: datetime | None = None

    def to_repository_data(self) -> RepositoryData:
        return RepositoryData(
            external_id=self.id,
            owner=self.owner.login,
            name=self.name,
            full_name=self.full_name,
            description=self.description,
            language=self.language,
            topics=self.topics,
            is_private=self.private,
            is_fork=self.fork,
            is_archived=self.archived,
            is_disabled=self.disabled,
            default_branch=self.default_branch,
            stars_count=self.stargazers_count,
            forks_count=self.forks_count,
            open_issues_count=self.open_issues_count,
            created_at=self.created_at,
            updated_at=self.updated_at,
            pushed_at=self.pushed_at,
        )


class GitHubBranchRef(_RestModel):
    ref: str


class GitHubPullRequest(_RestModel):
    """GitHub pull request.

    The listing endpoint omits ``merged`` and the line statistics;
    GET /repos/{owner}/{repo}/pulls/{number} includes them.
    """

    id: int
    number: int
    state: str = Field(description="open or closed")
    title: str
    body: str | None = None
    draft: bool = False
    user: GitHubUser | None = None
    merged_by: GitHubUser | None = None
    base: GitHubBranchRef | None = None
    head: GitHubBranchRef | None = None
    labels: list[dict[str, Any]] = Field(default_factory=list)

    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None
    merged_at: datetime | None = None
    merged: bool | None = None

    additions: int | None = None
    deletions: int | None = None
    changed_files: int | None = None

    def to_activity_data(self) -> ActivityData:
        return ActivityData(
            external_id=self.id,
            number=self.number,
            title=self.title,
            body=self.body,
            state=ActivityState.OPEN if self.state == "open" else ActivityState.CLOSED,
            merged=bool(self.merged),
            is_draft=self.draft,
            author=self.user.to_actor_data() if self.user else None,
            merged_by=self.merged_by.to_actor_data() if self.merged_by else None,
            base_branch=self.base.ref if self.base else None,
            head_branch=self.head.ref if self.head else None,
            additions=self.additions,
            deletions=self.deletions,
            changed_files=self.changed_files,
            labels=[
                {"name": label.get("name"), "color": label.get("color")}
                for label in self.labels
            ],
            created_at=self.created_at,
            updated_at=self.updated_at,
            closed_at=self.closed_at,
            merged_at=self.merged_at,
        )


class GitHubReview(_RestModel):
    """Review from GET /repos/{owner}/{repo}/pulls/{number}/reviews."""

    id: int
    user: GitHubUser | None = None
    state: str = Field(description="APPROVED, CHANGES_REQUESTED, COMMENTED, PENDING, DISMISSED")
    body: str | None = None
    submitted_at: datetime | None = None

    def to_review_data(self) -> ReviewData:
        return ReviewData(
            external_id=self.id,
            reviewer=self.user.to_actor_data() if self.user else None,
            state=ReviewState(self.state.lower()),
            body=self.body,
            submitted_at=self.submitted_at,
        )


class GitHubIssueComment(_RestModel):
    """Conversation comment from GET /repos/{owner}/{repo}/issues/{number}/comments."""

    id: int
    user: GitHubUser | None = None
    body: str | None = None
    reactions: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime | None = None

    def to_comment_data(self) -> CommentData:
        return CommentData(
            external_id=self.id,
            type=CommentType.ISSUE,
            author=self.user.to_actor_data() if self.user else None,
            body=self.body,
            reactions=_strip_reaction_urls(self.reactions),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class GitHubReviewComment(_RestModel):
    """Inline diff comment from GET /repos/{owner}/{repo}/pulls/{number}/comments."""

    id: int
    user: GitHubUser | None = None
    body: str | None = None
    path: str | None = None
    line: int | None = None
    original_line: int | None = None
    pull_request_review_id: int | None = None
    reactions: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime | None = None

    def to_comment_data(self) -> CommentData:
        return CommentData(
            external_id=self.id,
            type=CommentType.REVIEW_LINE,
            author=self.user.to_actor_data() if self.user else None,
            body=self.body,
            path=self.path,
            line=self.line if self.line is not None else self.original_line,
            review_external_id=self.pull_request_review_id,
            reactions=_strip_reaction_urls(self.reactions),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class GitHubGitActor(_RestModel):
    """Git author/committer (from git, not a GitHub user)."""

    name: str | None = None
    email: str | None = None
    date: datetime | None = None


class GitHubCommitDetail(_RestModel):
    message: str = ""
    author: GitHubGitActor | None = None
    committer: GitHubGitActor | None = None


class GitHubCommitStats(_RestModel):
    additions: int = 0
    deletions: int = 0
    total: int = 0


class GitHubCommit(_RestModel):
    """Commit from the commit listings or GET /repos/{owner}/{repo}/commits/{sha}.

    ``stats`` and ``files`` are only present on the single-commit endpoint.
    """

    sha: str
    commit: GitHubCommitDetail
    author: GitHubUser | None = None
    committer: GitHubUser | None = None
    html_url: str | None = None
    stats: GitHubCommitStats | None = None
    files: list[dict[str, Any]] | None = None

    def to_commit_data(self) -> CommitData:
        git_author = self.commit.author or GitHubGitActor()
        git_committer = self.commit.committer or GitHubGitActor()
        return CommitData(
            sha=self.sha,
            message=self.commit.message,
            author=self.author.to_actor_data() if self.author else None,
            committer=self.committer.to_actor_data() if self.committer else None,
            author_name=git_author.name,
            author_email=git_author.email,
            authored_at=git_author.date,
            committed_at=git_committer.date or git_author.date,
            additions=self.stats.additions if self.stats else None,
            deletions=self.stats.deletions if self.stats else None,
            changed_files=len(self.files) if self.files is not None else None,
            url=self.html_url,
        )


def _strip_reaction_urls(reactions: dict[str, Any]) -> dict[str, Any]:
    """Keep reaction counts, drop the API url."""
    return {k: v for k, v in reactions.items() if k != "url"}
