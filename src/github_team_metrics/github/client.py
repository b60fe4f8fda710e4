"""Async GitHub API client wrapper using githubkit.

This module provides a typed async interface to the GitHub REST and
GraphQL APIs with:

- quota tracking from response headers and a wait for the reset at the
  low-water-mark,
- bounded exponential backoff for transient failures,
- uniform REST (page number) and GraphQL (cursor) pagination,
- conversion of every payload into the canonical schemas.

Requests are issued one at a time; the client never fans out.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypeVar

from githubkit import GitHub
from githubkit.exception import RequestError, RequestFailed, RequestTimeout
from pydantic import ValidationError

from github_team_metrics.config import Settings, get_settings
from github_team_metrics.logging import get_logger
from github_team_metrics.schemas.canonical import (
    ActivityData,
    ActorData,
    CommentData,
    CommitData,
    Page,
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
from github_team_metrics.schemas.github_graphql import (
    PULL_REQUESTS_CONNECTION,
    PULL_REQUESTS_QUERY,
    GraphPullRequest,
    extract_connection,
)

from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubGraphQLError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubRetryableError,
)
from .pacing import RequestPacer, RetryPolicy
from .rate_limit import RateLimitMonitor, RateLimitPool

if TYPE_CHECKING:
    from githubkit.response import Response

logger = get_logger(__name__)

T = TypeVar("T")

RETRYABLE_STATUSES = frozenset({502, 503, 504})


class GitHubClient:
    """Async GitHub API client for activity ingestion.

    Usage:
        async with GitHubClient() as client:
            async for page in client.iter_pull_requests("octo", "widgets"):
                for activity in page:
                    print(activity.number, activity.state)

    Or without context manager:
        client = GitHubClient()
        page = await client.fetch_page("/orgs/octo/members")
        await client.close()
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        rate_monitor: RateLimitMonitor | None = None,
        pacer: RequestPacer | None = None,
        retry_policy: RetryPolicy | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub PAT. If not provided, uses GITHUB_TOKEN from settings.
            rate_monitor: Quota tracker fed from response headers.
            pacer: Decides the wait before each request (built on rate_monitor
                   when not given).
            retry_policy: Backoff policy for transient failures.
            settings: Settings override (defaults to get_settings()).

        Raises:
            GitHubAuthenticationError: If no token is available.
        """
        self._settings = settings or get_settings()
        self._token = token or self._settings.github_token
        if not self._token:
            raise GitHubAuthenticationError(
                "GitHub token required. Set GITHUB_TOKEN environment variable."
            )
        self._client: GitHub[Any] | None = None
        self._rate_monitor = rate_monitor or RateLimitMonitor(self._settings.rate_limit)
        self._pacer = pacer or RequestPacer(self._rate_monitor)
        self._retry = retry_policy or RetryPolicy.from_config(self._settings.retry)
        self._per_page = self._settings.sync.per_page
        self._graphql_timeout = self._settings.retry.graphql_timeout_seconds
        self._request_count = 0

    @property
    def _github(self) -> GitHub[Any]:
        """Get or create the githubkit client instance.

        githubkit's own retrying is disabled; retries follow RetryPolicy.
        """
        if self._client is None:
            self._client = GitHub(self._token, auto_retry=False)
        return self._client

    @property
    def rate_monitor(self) -> RateLimitMonitor:
        return self._rate_monitor

    @property
    def pacer(self) -> RequestPacer:
        return self._pacer

    @property
    def request_count(self) -> int:
        """Number of HTTP attempts issued (including retries)."""
        return self._request_count

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            self._client = None

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Request Core
    # -------------------------------------------------------------------------
    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        pool: RateLimitPool = RateLimitPool.CORE,
        timeout: float | None = None,
    ) -> Response[Any]:
        """Issue one request with pacing and retries.

        Raises:
            GitHubRetryableError: Transient failure persisted past the last retry
            GitHubRateLimitError: Quota exhausted (not retried)
            GitHubClientError: Any other failure (not retried)
        """
        attempt = 0
        while True:
            await self._pacer.wait(pool)
            self._request_count += 1
            try:
                call = self._github.arequest(method, url, params=params, json=json)
                if timeout is not None:
                    response = await asyncio.wait_for(call, timeout)
                else:
                    response = await call
            except RequestFailed as e:
                error, cause = self._handle_error(e, pool), e
            except TimeoutError as e:
                error = GitHubRetryableError(f"{method} {url} timed out after {timeout}s")
                cause = e
            except RequestTimeout as e:
                error, cause = GitHubRetryableError(f"{method} {url} timed out"), e
            except RequestError as e:
                error, cause = GitHubRetryableError(f"{method} {url} connection error: {e}"), e
            else:
                self._update_rate_limit_from_response(response, pool)
                return response

            if not self._retry.should_retry(error, attempt):
                if isinstance(error, GitHubRetryableError):
                    error.attempts = attempt + 1
                raise error from cause

            delay = self._retry.delay_for(attempt)
            logger.warning(
                "{} {} failed ({}), retrying in {:.0f}s (attempt {}/{})",
                method,
                url,
                error,
                delay,
                attempt + 1,
                self._retry.max_retries,
            )
            await asyncio.sleep(delay)
            attempt += 1

    def _update_rate_limit_from_response(
        self,
        response: Any,
        pool: RateLimitPool = RateLimitPool.CORE,
    ) -> None:
        """Feed x-ratelimit-* headers into the monitor."""
        headers = getattr(response, "headers", None)
        if not headers:
            return
        try:
            header_dict = {k.lower(): v for k, v in dict(headers.items()).items()}
            self._rate_monitor.update_from_headers(header_dict, pool)
        except (TypeError, ValueError) as e:
            # Malformed headers must not fail the call itself
            logger.debug("Failed to update rate limit from headers: {}", e)

    # -------------------------------------------------------------------------
    # Pagination
    # -------------------------------------------------------------------------
    async def fetch_page(
        self,
        resource: str,
        params: dict[str, Any] | None = None,
        *,
        page: int = 1,
        per_page: int | None = None,
    ) -> Page:
        """Fetch one page of a REST listing.

        Pagination continues while the returned page is exactly full-size.

        Args:
            resource: API path, e.g. "/orgs/octo/members"
            params: Extra query parameters
            page: 1-based page number
            per_page: Page size (defaults to settings)

        Returns:
            Page of raw JSON items
        """
        size = per_page or self._per_page
        query = {**(params or {}), "page": page, "per_page": size}
        response = await self._request("GET", resource, params=query)
        data = response.json()
        items = data if isinstance(data, list) else []
        has_more = len(items) == size
        return Page(items=items, has_more=has_more, next_page=page + 1 if has_more else None)

    async def iter_pages(
        self,
        resource: str,
        params: dict[str, Any] | None = None,
        *,
        per_page: int | None = None,
        page_delay: float = 0.0,
    ) -> AsyncIterator[Page]:
        """Yield REST pages until a short page ends the listing.

        Args:
            resource: API path
            params: Extra query parameters
            per_page: Page size (defaults to settings)
            page_delay: Courtesy sleep between pages, in seconds
        """
        page_number: int | None = 1
        while page_number is not None:
            page = await self.fetch_page(resource, params, page=page_number, per_page=per_page)
            yield page
            page_number = page.next_page
            if page_number is not None and page_delay > 0:
                await asyncio.sleep(page_delay)

    async def execute_query(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Run a GraphQL query and return its ``data`` object.

        The request is bounded by the GraphQL deadline, which is retried
        like any other transient failure.

        Raises:
            GitHubGraphQLError: If the response carries a non-empty errors array
        """
        response = await self._request(
            "POST",
            "/graphql",
            json={"query": query, "variables": variables or {}},
            pool=RateLimitPool.GRAPHQL,
            timeout=self._graphql_timeout,
        )
        body = response.json() or {}
        errors = body.get("errors")
        if errors:
            raise GitHubGraphQLError(errors)
        return body.get("data") or {}

    async def fetch_graph_page(
        self,
        query: str,
        variables: dict[str, Any],
        connection: tuple[str, ...],
        *,
        after: str | None = None,
        first: int | None = None,
    ) -> Page:
        """Fetch one page of a GraphQL connection.

        Args:
            query: Query taking ``$first`` and ``$after`` variables
            variables: Other query variables
            connection: Path from ``data`` to the connection object
            after: Cursor of the previous page
            first: Page size (defaults to settings)

        Returns:
            Page of raw node dicts; ``cursor`` is set while more pages exist
        """
        data = await self.execute_query(
            query,
            {**variables, "first": first or self._per_page, "after": after},
        )
        conn = extract_connection(data, connection)
        page_info = conn.get("pageInfo") or {}
        cursor = page_info.get("endCursor")
        has_more = bool(page_info.get("hasNextPage")) and cursor is not None
        return Page(
            items=[node for node in conn.get("nodes") or [] if node is not None],
            has_more=has_more,
            cursor=cursor if has_more else None,
        )

    async def iter_graph_pages(
        self,
        query: str,
        variables: dict[str, Any],
        connection: tuple[str, ...],
        *,
        first: int | None = None,
        page_delay: float = 0.0,
    ) -> AsyncIterator[Page]:
        """Yield GraphQL pages until the server reports no next page."""
        cursor: str | None = None
        while True:
            page = await self.fetch_graph_page(
                query, variables, connection, after=cursor, first=first
            )
            yield page
            if not page.has_more:
                return
            cursor = page.cursor
            if page_delay > 0:
                await asyncio.sleep(page_delay)

    # -------------------------------------------------------------------------
    # Organization
    # -------------------------------------------------------------------------
    async def iter_org_members(
        self, org: str, *, page_delay: float = 0.0
    ) -> AsyncIterator[list[ActorData]]:
        """Yield organization members page by page."""
        async for page in self.iter_pages(f"/orgs/{org}/members", page_delay=page_delay):
            yield _parse_items(page.items, _parse_user, "members")

    async def get_user(self, username: str) -> ActorData:
        """Fetch a user's public profile.

        Raises:
            GitHubNotFoundError: If the user doesn't exist
        """
        response = await self._request("GET", f"/users/{username}")
        return GitHubUser.model_validate(response.json()).to_actor_data()

    async def iter_org_repositories(
        self, org: str, *, page_delay: float = 0.0
    ) -> AsyncIterator[list[RepositoryData]]:
        """Yield organization repositories page by page, recently updated first."""
        async for page in self.iter_pages(
            f"/orgs/{org}/repos",
            {"type": "all", "sort": "updated", "direction": "desc"},
            page_delay=page_delay,
        ):
            yield _parse_items(page.items, _parse_repository, "repositories")

    async def get_repository_languages(self, owner: str, repo: str) -> dict[str, int]:
        """Language breakdown in bytes, e.g. {"Python": 12034}."""
        response = await self._request("GET", f"/repos/{owner}/{repo}/languages")
        data = response.json()
        return {str(k): int(v) for k, v in data.items()} if isinstance(data, dict) else {}

    # -------------------------------------------------------------------------
    # Pull Requests
    # -------------------------------------------------------------------------
    async def iter_pull_requests(
        self,
        owner: str,
        repo: str,
        *,
        page_delay: float = 0.0,
    ) -> AsyncIterator[list[ActivityData]]:
        """Yield pull requests (all states) page by page, recently updated first.

        Listing payloads lack line statistics; see get_pull_request().
        """
        async for page in self.iter_pages(
            f"/repos/{owner}/{repo}/pulls",
            {"state": "all", "sort": "updated", "direction": "desc"},
            page_delay=page_delay,
        ):
            yield _parse_items(page.items, _parse_pull_request, f"{owner}/{repo} pulls")

    async def iter_pull_requests_graphql(
        self,
        owner: str,
        repo: str,
        *,
        page_delay: float = 0.0,
    ) -> AsyncIterator[list[ActivityData]]:
        """GraphQL variant of iter_pull_requests (includes line statistics)."""
        async for page in self.iter_graph_pages(
            PULL_REQUESTS_QUERY,
            {"owner": owner, "name": repo},
            PULL_REQUESTS_CONNECTION,
            page_delay=page_delay,
        ):
            yield _parse_items(page.items, _parse_graph_pull_request, f"{owner}/{repo} pulls")

    async def get_pull_request(self, owner: str, repo: str, number: int) -> ActivityData:
        """Get full details (including line statistics) for one pull request.

        Raises:
            GitHubNotFoundError: If the pull request doesn't exist
        """
        try:
            response = await self._request("GET", f"/repos/{owner}/{repo}/pulls/{number}")
        except GitHubNotFoundError as e:
            raise GitHubNotFoundError(f"PR #{number} not found in {owner}/{repo}") from e
        return GitHubPullRequest.model_validate(response.json()).to_activity_data()

    async def iter_reviews(
        self, owner: str, repo: str, number: int, *, page_delay: float = 0.0
    ) -> AsyncIterator[list[ReviewData]]:
        """Yield the reviews on a pull request page by page."""
        async for page in self.iter_pages(
            f"/repos/{owner}/{repo}/pulls/{number}/reviews", page_delay=page_delay
        ):
            yield _parse_items(page.items, _parse_review, f"{owner}/{repo}#{number} reviews")

    async def iter_issue_comments(
        self, owner: str, repo: str, number: int, *, page_delay: float = 0.0
    ) -> AsyncIterator[list[CommentData]]:
        """Yield conversation comments on a pull request page by page."""
        async for page in self.iter_pages(
            f"/repos/{owner}/{repo}/issues/{number}/comments", page_delay=page_delay
        ):
            yield _parse_items(
                page.items, _parse_issue_comment, f"{owner}/{repo}#{number} comments"
            )

    async def iter_review_comments(
        self, owner: str, repo: str, number: int, *, page_delay: float = 0.0
    ) -> AsyncIterator[list[CommentData]]:
        """Yield inline diff comments on a pull request page by page."""
        async for page in self.iter_pages(
            f"/repos/{owner}/{repo}/pulls/{number}/comments", page_delay=page_delay
        ):
            yield _parse_items(
                page.items, _parse_review_comment, f"{owner}/{repo}#{number} review comments"
            )

    async def iter_pull_request_commits(
        self, owner: str, repo: str, number: int, *, page_delay: float = 0.0
    ) -> AsyncIterator[list[CommitData]]:
        """Yield the commits on a pull request (without line statistics) page by page."""
        async for page in self.iter_pages(
            f"/repos/{owner}/{repo}/pulls/{number}/commits", page_delay=page_delay
        ):
            yield _parse_items(page.items, _parse_commit, f"{owner}/{repo}#{number} commits")

    async def list_reviews(self, owner: str, repo: str, number: int) -> list[ReviewData]:
        """All reviews on a pull request."""
        return await _flatten(self.iter_reviews(owner, repo, number))

    async def list_issue_comments(self, owner: str, repo: str, number: int) -> list[CommentData]:
        """Conversation comments on a pull request."""
        return await _flatten(self.iter_issue_comments(owner, repo, number))

    async def list_review_comments(self, owner: str, repo: str, number: int) -> list[CommentData]:
        """Inline diff comments on a pull request."""
        return await _flatten(self.iter_review_comments(owner, repo, number))

    async def list_pull_request_commits(
        self, owner: str, repo: str, number: int
    ) -> list[CommitData]:
        """Commits on a pull request (without line statistics)."""
        return await _flatten(self.iter_pull_request_commits(owner, repo, number))

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
        """Yield repository commits on the default branch page by page."""
        params: dict[str, Any] = {}
        if since is not None:
            params["since"] = _iso(since)
        if until is not None:
            params["until"] = _iso(until)
        async for page in self.iter_pages(
            f"/repos/{owner}/{repo}/commits", params, page_delay=page_delay
        ):
            yield _parse_items(page.items, _parse_commit, f"{owner}/{repo} commits")

    async def get_commit(self, owner: str, repo: str, sha: str) -> CommitData:
        """Get a single commit with line statistics."""
        response = await self._request("GET", f"/repos/{owner}/{repo}/commits/{sha}")
        return GitHubCommit.model_validate(response.json()).to_commit_data()

    # -------------------------------------------------------------------------
    # Rate Limit Info
    # -------------------------------------------------------------------------
    async def get_rate_limit(self) -> dict[str, Any]:
        """Refresh quota state from GET /rate_limit (free) and return it."""
        response = await self._request("GET", "/rate_limit")
        self._rate_monitor.update_from_api_response(response.json())
        return self._rate_monitor.to_dict()

    # -------------------------------------------------------------------------
    # Error Handling
    # -------------------------------------------------------------------------
    def _handle_error(
        self,
        error: RequestFailed,
        pool: RateLimitPool = RateLimitPool.CORE,
    ) -> GitHubClientError:
        """Convert githubkit exceptions to our custom exceptions."""
        # Error responses still carry (and count against) the quota
        self._update_rate_limit_from_response(error.response, pool)

        status = error.response.status_code
        headers = {k.lower(): v for k, v in dict(error.response.headers.items()).items()}

        if status == 401:
            return GitHubAuthenticationError("Invalid GitHub token")
        if status in (403, 429):
            if headers.get("x-ratelimit-remaining") == "0" or status == 429:
                reset_at = _reset_time(headers)
                if reset_at is not None:
                    self._pacer.force_wait_until(reset_at)
                return GitHubRateLimitError("GitHub rate limit exceeded", reset_at=reset_at)
            return GitHubClientError(f"Access forbidden: {error}")
        if status == 404:
            return GitHubNotFoundError(str(error))
        if status in RETRYABLE_STATUSES:
            return GitHubRetryableError(f"GitHub gateway error ({status})")
        return GitHubClientError(f"GitHub API error ({status}): {error}")


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def _parse_items(
    items: list[Any],
    parse: Callable[[dict[str, Any]], T],
    what: str,
) -> list[T]:
    parsed: list[T] = []
    for item in items:
        try:
            parsed.append(parse(item))
        except (ValidationError, ValueError) as e:
            logger.warning("Skipping malformed {} item: {}", what, e)
    return parsed


async def _flatten(pages: AsyncIterator[list[T]]) -> list[T]:
    return [item async for page in pages for item in page]


def _parse_user(item: dict[str, Any]) -> ActorData:
    return GitHubUser.model_validate(item).to_actor_data()


def _parse_repository(item: dict[str, Any]) -> RepositoryData:
    return GitHubRepository.model_validate(item).to_repository_data()


def _parse_pull_request(item: dict[str, Any]) -> ActivityData:
    return GitHubPullRequest.model_validate(item).to_activity_data()


def _parse_graph_pull_request(item: dict[str, Any]) -> ActivityData:
    return GraphPullRequest.model_validate(item).to_activity_data()


def _parse_review(item: dict[str, Any]) -> ReviewData:
    return GitHubReview.model_validate(item).to_review_data()


def _parse_issue_comment(item: dict[str, Any]) -> CommentData:
    return GitHubIssueComment.model_validate(item).to_comment_data()


def _parse_review_comment(item: dict[str, Any]) -> CommentData:
    return GitHubReviewComment.model_validate(item).to_comment_data()


def _parse_commit(item: dict[str, Any]) -> CommitData:
    return GitHubCommit.model_validate(item).to_commit_data()


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _reset_time(headers: dict[str, str]) -> datetime | None:
    """Reset time from x-ratelimit-reset, or now + retry-after."""
    reset_ts = headers.get("x-ratelimit-reset")
    if reset_ts and reset_ts.isdigit():
        return datetime.fromtimestamp(int(reset_ts), tz=UTC)
    retry_after = headers.get("retry-after")
    if retry_after and retry_after.isdigit():
        return datetime.fromtimestamp(datetime.now(UTC).timestamp() + int(retry_after), tz=UTC)
    return None
