"""In-memory stand-in for GitHubClient used by sync and scheduler tests.

Data is registered as REST payload dicts and converted with the real
schema adapters, so the orchestrator sees exactly what the client would
produce. Every call is recorded in ``calls``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, datetime
from typing import Any

from github_team_metrics.github.exceptions import GitHubClientError, GitHubNotFoundError
from github_team_metrics.github.rate_limit import RateLimitMonitor
from github_team_metrics.schemas.base import as_naive_utc
from github_team_metrics.schemas.canonical import (
    ActivityData,
    ActorData,
    CommentData,
    CommitData,
    RepositoryData,
    ReviewData,
)
from github_team_metrics.schemas.github_api import (
    GitHubCommit,
    GitHubIssueComment,
    GitHubPullRequest,
    GitHubRepository,
    GitHubReview,
    GitHubReviewComment,
    GitHubUser,
)
from github_team_metrics.schemas.github_graphql import GraphPullRequest
from tests.conftest import TEST_ORG
from tests.factories import (
    make_commit_payload,
    make_issue_comment_payload,
    make_pr_payload,
    make_repo_payload,
    make_review_comment_payload,
    make_review_payload,
    make_user_payload,
)


class FakeGitHubClient:
    """Serves a small organization from memory."""

    def __init__(self, page_size: int = 100) -> None:
        self.page_size = page_size
        self.rate_monitor = RateLimitMonitor()
        self.calls: list[str] = []
        self.members: list[dict[str, Any]] = []
        self.users: dict[str, dict[str, Any]] = {}
        self.repos: list[dict[str, Any]] = []
        self.languages: dict[str, dict[str, int]] = {}
        self.pulls: dict[str, list[dict[str, Any]]] = {}
        self.graph_pulls: dict[str, list[dict[str, Any]]] = {}
        self.reviews: dict[tuple[str, int], list[dict[str, Any]]] = {}
        self.issue_comments: dict[tuple[str, int], list[dict[str, Any]]] = {}
        self.review_comments: dict[tuple[str, int], list[dict[str, Any]]] = {}
        self.pr_commits: dict[tuple[str, int], list[dict[str, Any]]] = {}
        self.commits: dict[str, list[dict[str, Any]]] = {}
        self.commit_details: dict[str, dict[str, Any]] = {}
        # method name -> exception raised on every call
        self.failures: dict[str, Exception] = {}
        # method name -> (index of the first failing page, exception)
        self.page_failures: dict[str, tuple[int, Exception]] = {}

    @property
    def request_count(self) -> int:
        return len(self.calls)

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]

    def _pages(self, items: list[Any]) -> list[list[Any]]:
        return [items[i : i + self.page_size] for i in range(0, len(items), self.page_size)] or [[]]

    async def _serve(self, name: str, items: list[Any]) -> AsyncIterator[list[Any]]:
        """Yield ``items`` in pages, honouring ``page_failures[name]``."""
        for index, page in enumerate(self._pages(items)):
            self._record(name)
            failure = self.page_failures.get(name)
            if failure is not None and index >= failure[0]:
                raise failure[1]
            yield page

    # -------------------------------------------------------------------------
    # Organization
    # -------------------------------------------------------------------------
    async def iter_org_members(
        self, org: str, *, page_delay: float = 0.0
    ) -> AsyncIterator[list[ActorData]]:
        for page in self._pages(self.members):
            self._record("iter_org_members")
            yield [GitHubUser.model_validate(m).to_actor_data() for m in page]

    async def get_user(self, username: str) -> ActorData:
        self._record("get_user")
        if username not in self.users:
            raise GitHubNotFoundError(f"User {username} not found")
        return GitHubUser.model_validate(self.users[username]).to_actor_data()

    async def iter_org_repositories(
        self, org: str, *, page_delay: float = 0.0
    ) -> AsyncIterator[list[RepositoryData]]:
        for page in self._pages(self.repos):
            self._record("iter_org_repositories")
            yield [GitHubRepository.model_validate(r).to_repository_data() for r in page]

    async def get_repository_languages(self, owner: str, repo: str) -> dict[str, int]:
        self._record("get_repository_languages")
        return dict(self.languages.get(f"{owner}/{repo}", {}))

    # -------------------------------------------------------------------------
    # Pull Requests
    # -------------------------------------------------------------------------
    async def iter_pull_requests(
        self, owner: str, repo: str, *, page_delay: float = 0.0
    ) -> AsyncIterator[list[ActivityData]]:
        listing = [
            {k: v for k, v in p.items() if k not in ("additions", "deletions", "changed_files")}
            for p in self.pulls.get(f"{owner}/{repo}", [])
        ]
        for page in self._pages(listing):
            self._record("iter_pull_requests")
            yield [GitHubPullRequest.model_validate(p).to_activity_data() for p in page]

    async def iter_pull_requests_graphql(
        self, owner: str, repo: str, *, page_delay: float = 0.0
    ) -> AsyncIterator[list[ActivityData]]:
        for page in self._pages(self.graph_pulls.get(f"{owner}/{repo}", [])):
            self._record("iter_pull_requests_graphql")
            yield [GraphPullRequest.model_validate(p).to_activity_data() for p in page]

    async def get_pull_request(self, owner: str, repo: str, number: int) -> ActivityData:
        self._record("get_pull_request")
        for payload in self.pulls.get(f"{owner}/{repo}", []):
            if payload["number"] == number:
                return GitHubPullRequest.model_validate(payload).to_activity_data()
        raise GitHubNotFoundError(f"PR #{number} not found in {owner}/{repo}")

    async def iter_reviews(
        self, owner: str, repo: str, number: int, *, page_delay: float = 0.0
    ) -> AsyncIterator[list[ReviewData]]:
        items = self.reviews.get((f"{owner}/{repo}", number), [])
        async for page in self._serve("iter_reviews", items):
            yield [GitHubReview.model_validate(r).to_review_data() for r in page]

    async def iter_issue_comments(
        self, owner: str, repo: str, number: int, *, page_delay: float = 0.0
    ) -> AsyncIterator[list[CommentData]]:
        items = self.issue_comments.get((f"{owner}/{repo}", number), [])
        async for page in self._serve("iter_issue_comments", items):
            yield [GitHubIssueComment.model_validate(c).to_comment_data() for c in page]

    async def iter_review_comments(
        self, owner: str, repo: str, number: int, *, page_delay: float = 0.0
    ) -> AsyncIterator[list[CommentData]]:
        items = self.review_comments.get((f"{owner}/{repo}", number), [])
        async for page in self._serve("iter_review_comments", items):
            yield [GitHubReviewComment.model_validate(c).to_comment_data() for c in page]

    async def iter_pull_request_commits(
        self, owner: str, repo: str, number: int, *, page_delay: float = 0.0
    ) -> AsyncIterator[list[CommitData]]:
        items = self.pr_commits.get((f"{owner}/{repo}", number), [])
        async for page in self._serve("iter_pull_request_commits", items):
            yield [GitHubCommit.model_validate(c).to_commit_data() for c in page]

    # -------------------------------------------------------------------------
    # Commits
    # -------------------------------------------------------------------------
    async def iter_commits(
        self,
        owner: str,
        repo: str,
        *,
        since: datetime | None = None,
        until: datetime | None = None,
        page_delay: float = 0.0,
    ) -> AsyncIterator[list[CommitData]]:
        parsed = [
            GitHubCommit.model_validate(c).to_commit_data()
            for c in self.commits.get(f"{owner}/{repo}", [])
        ]
        since = as_naive_utc(since)
        if since is not None:
            parsed = [c for c in parsed if c.committed_at is None or c.committed_at >= since]
        for page in self._pages(parsed):
            self._record("iter_commits")
            yield page

    async def get_commit(self, owner: str, repo: str, sha: str) -> CommitData:
        self._record("get_commit")
        if sha not in self.commit_details:
            raise GitHubClientError(f"Commit {sha} unavailable")
        return GitHubCommit.model_validate(self.commit_details[sha]).to_commit_data()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    def add_member(self, login: str, **profile: Any) -> None:
        payload = make_user_payload(login, **profile)
        self.members.append(make_user_payload(login))
        self.users[login] = payload

    def add_user(self, login: str, **profile: Any) -> None:
        self.users[login] = make_user_payload(login, **profile)


# -----------------------------------------------------------------------------
# Scenario
# -----------------------------------------------------------------------------
def at(hour: int, day: int = 1, month: int = 10) -> datetime:
    """A 2024 timestamp on the hour (UTC)."""
    return datetime(2024, month, day, hour, 0, tzinfo=UTC)


def build_small_org(client: FakeGitHubClient) -> FakeGitHubClient:
    """Register a one-repository organization on ``client``.

    alice and bob are members; carol only shows up as a reviewer.
    PR #1 (alice, opened 09:00) merged by bob at 15:00 with two reviews
    (bob 12:00, carol 13:00) and three comments, one inline.
    PR #2 (bob, opened 10:00) is still open. All on 2024-10-01.
    """
    full_name = f"{TEST_ORG}/widgets"
    client.add_member("alice", name="Alice A")
    client.add_member("bob")
    client.add_user("carol")
    client.repos = [make_repo_payload("widgets")]
    client.languages[full_name] = {"Python": 12034, "Shell": 200}

    client.pulls[full_name] = [
        make_pr_payload(2, author="bob", created_at=at(10), updated_at=at(16)),
        make_pr_payload(
            1,
            author="alice",
            state="closed",
            created_at=at(9),
            updated_at=at(15),
            merged_at=at(15),
            merged_by="bob",
        ),
    ]
    client.reviews[(full_name, 1)] = [
        make_review_payload(101, reviewer="bob", state="APPROVED", submitted_at=at(12)),
        make_review_payload(102, reviewer="carol", state="COMMENTED", submitted_at=at(13)),
    ]
    client.issue_comments[(full_name, 1)] = [
        make_issue_comment_payload(201, author="bob", created_at=at(10)),
        make_issue_comment_payload(202, author="carol", created_at=at(11)),
    ]
    client.review_comments[(full_name, 1)] = [
        make_review_comment_payload(301, review_id=101, author="bob", created_at=at(12)),
    ]
    client.pr_commits[(full_name, 1)] = [make_commit_payload("1" * 40, committed_at=at(8))]
    client.commits[full_name] = [
        make_commit_payload("2" * 40, author="bob", committed_at=at(14)),
        make_commit_payload("1" * 40, committed_at=at(8)),
    ]
    client.commit_details = {
        "1" * 40: make_commit_payload("1" * 40, committed_at=at(8), with_stats=True),
        "2" * 40: make_commit_payload("2" * 40, author="bob", committed_at=at(14), with_stats=True),
    }
    return client
