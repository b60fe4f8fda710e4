"""Sync Orchestrator - GitHub organization activity to database.

Runs the sync phases in dependency order:

    Actors → Repositories → per active repository:
        Activities (reviews, issue comments, review comments, PR commits) → Commits

Failures are isolated per entity: the failing entity is rolled back,
logged and recorded, and its siblings continue. A failing page fetch
ends that listing and is recorded against its phase.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from github_team_metrics.config import Settings, get_settings
from github_team_metrics.db.engine import get_session_factory
from github_team_metrics.db.repositories import (
    ActivityRepository,
    ActorRepository,
    CommentRepository,
    CommitRepository,
    RepositoryRepository,
    ReviewRepository,
)
from github_team_metrics.github.exceptions import GitHubClientError
from github_team_metrics.logging import bind_activity, bind_repo, get_logger
from github_team_metrics.schemas.base import utc_now

from .commit_manager import CommitManager
from .results import SyncOptions, SyncResult

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from github_team_metrics.db.models import Activity, Commit
    from github_team_metrics.github.client import GitHubClient
    from github_team_metrics.schemas.canonical import (
        ActivityData,
        ActorData,
        CommentData,
        CommitData,
    )

logger = get_logger(__name__)


@dataclass(frozen=True)
class _RepoRef:
    """Plain copy of the repository fields a sync needs.

    Survives session rollbacks, unlike the ORM instance.
    """

    id: int
    owner: str
    name: str
    full_name: str


class _SyncSession:
    """Repositories, commit boundaries and actor cache for one run."""

    def __init__(self, session: AsyncSession, batch_size: int) -> None:
        self.session = session
        self.commits = CommitManager(session, batch_size=batch_size)
        self.actor_repo = ActorRepository(session)
        self.repository_repo = RepositoryRepository(session)
        self.activity_repo = ActivityRepository(session)
        self.review_repo = ReviewRepository(session)
        self.comment_repo = CommentRepository(session)
        self.commit_repo = CommitRepository(session)
        self.actor_ids: dict[str, int | None] = {}

    async def rollback(self) -> None:
        await self.commits.rollback()
        # Cached ids may point at rows that were just rolled back
        self.actor_ids.clear()


class SyncOrchestrator:
    """Syncs an organization's members, repositories and activity.

    At most one run is active per orchestrator: ``sync()`` called while a
    run is in progress returns ``SyncResult.busy()`` without touching
    the network.

    Usage:
        async with GitHubClient() as client:
            orchestrator = SyncOrchestrator(client)
            result = await orchestrator.sync(SyncOptions(since=datetime(2024, 10, 1)))
            print(result.to_dict())
    """

    def __init__(
        self,
        client: GitHubClient,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: GitHub API client
            session_factory: Session factory (defaults to the configured database)
            settings: Settings override (defaults to get_settings())
        """
        self._client = client
        self._session_factory = session_factory or get_session_factory()
        self._settings = settings or get_settings()
        self._in_progress = False
        self._last_sync_at: datetime | None = None
        self._history: deque[SyncResult] = deque(maxlen=self._settings.sync.history_size)

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    @property
    def last_sync_at(self) -> datetime | None:
        return self._last_sync_at

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def sync(self, options: SyncOptions | None = None) -> SyncResult:
        """Run one sync.

        Args:
            options: What to sync (defaults to everything in the default window)

        Returns:
            SyncResult with counts and per-entity errors
        """
        if self._in_progress:
            logger.warning("Sync requested while another sync is running")
            return SyncResult.busy()

        self._in_progress = True
        options = options or SyncOptions()
        result = SyncResult()
        logger.info("Starting sync: {}", options.to_dict())
        try:
            await self._run(options, result)
        except Exception as e:
            logger.exception("Sync aborted: {}", e)
            result.success = False
            result.message = f"Sync failed: {e}"
            result.add_error("Sync", e)
        finally:
            self._in_progress = False
            result.complete()
            self._last_sync_at = result.completed_at
            self._history.append(result)

        logger.info(
            "Sync finished in {:.1f}s: {} actors, {} repositories, {} activities, "
            "{} reviews, {} comments, {} commits, {} errors",
            result.duration_seconds,
            result.actors_synced,
            result.repositories_synced,
            result.activities_synced,
            result.reviews_synced,
            result.comments_synced,
            result.commits_synced,
            result.error_count,
        )
        return result

    def get_status(self) -> dict[str, Any]:
        """Current state for status output."""
        last = self._history[-1] if self._history else None
        return {
            "in_progress": self._in_progress,
            "last_sync_at": self._last_sync_at.isoformat() if self._last_sync_at else None,
            "last_result": last.to_dict() if last else None,
            "rate_limit": self._client.rate_monitor.to_dict(),
        }

    def history(self, limit: int | None = None) -> list[SyncResult]:
        """Most recent results, newest first."""
        results = list(reversed(self._history))
        return results[:limit] if limit is not None else results

    def request_stop(self) -> dict[str, Any]:
        """Acknowledge a stop request.

        Runs are not interruptible; an active run continues to completion.
        """
        logger.info(
            "Stop requested (in progress: {}); running syncs are not interrupted",
            self._in_progress,
        )
        return {
            "stopped": False,
            "in_progress": self._in_progress,
            "message": "Stop is not supported; an active sync runs to completion",
        }

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    async def _run(self, options: SyncOptions, result: SyncResult) -> None:
        sync_cfg = self._settings.sync
        window_start = options.since or (utc_now() - sync_cfg.default_window)

        async with self._session_factory() as session:
            ctx = _SyncSession(session, sync_cfg.commit_batch_size)

            if not options.skip_actors:
                try:
                    await self._sync_actors(ctx, result)
                except Exception as e:
                    logger.error("Actor sync failed: {}", e)
                    await ctx.rollback()
                    result.add_error("Actors", e)

            if not options.skip_repositories:
                try:
                    await self._sync_repositories(ctx, result)
                except Exception as e:
                    logger.error("Repository sync failed: {}", e)
                    await ctx.rollback()
                    result.add_error("Repositories", e)

            if options.skip_activities and options.skip_commits:
                await ctx.commits.finalize()
                return

            repositories = [
                _RepoRef(r.id, r.owner, r.name, r.full_name)
                for r in await ctx.repository_repo.get_active(options.repositories)
            ]
            for index, repo in enumerate(repositories):
                if index > 0:
                    await _courtesy_sleep(sync_cfg.repository_delay_ms)

                if not options.skip_activities:
                    try:
                        await self._sync_activities(ctx, repo, options, window_start, result)
                    except Exception as e:
                        bind_repo(repo.full_name).error("Activity listing failed: {}", e)
                        await ctx.rollback()
                        result.add_error(f"Activities ({repo.full_name})", e)

                if not options.skip_commits:
                    try:
                        await self._sync_commits(ctx, repo, window_start, result)
                    except Exception as e:
                        bind_repo(repo.full_name).error("Commit listing failed: {}", e)
                        await ctx.rollback()
                        result.add_error(f"Commits ({repo.full_name})", e)

                stored = await ctx.repository_repo.get_by_id(repo.id)
                if stored is not None:
                    await ctx.repository_repo.mark_synced(stored)
                await ctx.commits.commit()

            await ctx.commits.finalize()

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def _organization(self) -> str:
        if not self._settings.organization:
            raise ValueError("ORGANIZATION is not configured")
        return self._settings.organization

    async def _sync_actors(self, ctx: _SyncSession, result: SyncResult) -> None:
        org = self._organization()
        page_delay = self._settings.sync.page_delay_ms / 1000
        async for members in self._client.iter_org_members(org, page_delay=page_delay):
            for member in members:
                try:
                    try:
                        profile = await self._client.get_user(member.username)
                    except GitHubClientError as e:
                        logger.warning("Profile fetch failed for {}: {}", member.username, e)
                        profile = member
                    actor, _ = await ctx.actor_repo.upsert(profile)
                    ctx.actor_ids[actor.username] = actor.id
                    await ctx.commits.record_success()
                    result.actors_synced += 1
                except Exception as e:
                    logger.warning("Failed to sync actor {}: {}", member.username, e)
                    await ctx.rollback()
                    result.add_error(f"Actor {member.username}", e)

    async def _sync_repositories(self, ctx: _SyncSession, result: SyncResult) -> None:
        org = self._organization()
        page_delay = self._settings.sync.page_delay_ms / 1000
        async for repos in self._client.iter_org_repositories(org, page_delay=page_delay):
            for data in repos:
                log = bind_repo(data.full_name)
                try:
                    try:
                        languages = await self._client.get_repository_languages(
                            data.owner, data.name
                        )
                    except GitHubClientError as e:
                        log.warning("Language breakdown unavailable: {}", e)
                        languages = None
                    await ctx.repository_repo.upsert(data, languages)
                    await ctx.commits.record_success()
                    result.repositories_synced += 1
                except Exception as e:
                    log.warning("Failed to sync repository: {}", e)
                    await ctx.rollback()
                    result.add_error(f"Repository {data.full_name}", e)

    async def _sync_activities(
        self,
        ctx: _SyncSession,
        repo: _RepoRef,
        options: SyncOptions,
        window_start: datetime,
        result: SyncResult,
    ) -> None:
        sync_cfg = self._settings.sync
        processed = 0
        async for activities in self._iter_activities(repo, options):
            for data in activities:
                # Listings are sorted by updated desc: everything after is older
                if not options.full_sync and data.updated_at < window_start:
                    bind_repo(repo.full_name).debug(
                        "Reached PR #{} updated before window start", data.number
                    )
                    return

                if processed > 0:
                    await _courtesy_sleep(sync_cfg.activity_delay_ms)
                processed += 1

                try:
                    await self._sync_activity(ctx, repo, data, result)
                    await ctx.commits.record_success()
                    result.activities_synced += 1
                except Exception as e:
                    bind_activity(repo.full_name, data.number).warning(
                        "Failed to sync pull request: {}", e
                    )
                    await ctx.rollback()
                    result.add_error(f"Activity {repo.full_name}#{data.number}", e)

    def _iter_activities(
        self, repo: _RepoRef, options: SyncOptions
    ) -> AsyncIterator[list[ActivityData]]:
        transport = options.transport or self._settings.sync.activity_transport
        page_delay = self._settings.sync.page_delay_ms / 1000
        if transport == "graphql":
            return self._client.iter_pull_requests_graphql(
                repo.owner, repo.name, page_delay=page_delay
            )
        return self._client.iter_pull_requests(repo.owner, repo.name, page_delay=page_delay)

    async def _sync_activity(
        self,
        ctx: _SyncSession,
        repo: _RepoRef,
        data: ActivityData,
        result: SyncResult,
    ) -> Activity:
        """Upsert one pull request with its reviews, comments and commits."""
        log = bind_activity(repo.full_name, data.number)

        if not data.has_stats:
            try:
                data = await self._client.get_pull_request(repo.owner, repo.name, data.number)
            except GitHubClientError as e:
                log.warning("Detail fetch failed, keeping listing data: {}", e)

        activity, created = await ctx.activity_repo.upsert(
            repo.id,
            data,
            author_id=await self._resolve_actor(ctx, data.author),
            merged_by_id=await self._resolve_actor(ctx, data.merged_by),
        )
        log.debug("{} pull request", "Created" if created else "Updated")

        page_delay = self._settings.sync.page_delay_ms / 1000
        review_ids: dict[int, int] = {}
        try:
            async for reviews in self._client.iter_reviews(
                repo.owner, repo.name, data.number, page_delay=page_delay
            ):
                for review_data in reviews:
                    review, _ = await ctx.review_repo.upsert(
                        activity.id,
                        review_data,
                        reviewer_id=await self._resolve_actor(ctx, review_data.reviewer),
                    )
                    review_ids[review_data.external_id] = review.id
                    result.reviews_synced += 1
        except GitHubClientError as e:
            # Pages already stored are kept; the counters below count them
            log.warning("Review sync stopped: {}", e)
            result.add_error(f"Reviews {repo.full_name}#{data.number}", e)

        for label, iter_comments in (
            ("Issue comments", self._client.iter_issue_comments),
            ("Review comments", self._client.iter_review_comments),
        ):
            try:
                async for comments in iter_comments(
                    repo.owner, repo.name, data.number, page_delay=page_delay
                ):
                    for comment_data in comments:
                        await self._store_comment(ctx, activity, comment_data, review_ids)
                        result.comments_synced += 1
            except GitHubClientError as e:
                log.warning("{} sync stopped: {}", label, e)
                result.add_error(f"{label} {repo.full_name}#{data.number}", e)

        try:
            async for commits in self._client.iter_pull_request_commits(
                repo.owner, repo.name, data.number, page_delay=page_delay
            ):
                for commit_data in commits:
                    commit = await self._store_commit(ctx, repo, commit_data)
                    await ctx.commit_repo.link_to_activity(commit, activity)
        except GitHubClientError as e:
            log.warning("Pull request commit sync stopped: {}", e)
            result.add_error(f"PR commits {repo.full_name}#{data.number}", e)

        return await ctx.activity_repo.reconcile_counters(activity)

    async def _store_comment(
        self,
        ctx: _SyncSession,
        activity: Activity,
        data: CommentData,
        review_ids: dict[int, int],
    ) -> None:
        review_id = None
        if data.review_external_id is not None:
            review_id = review_ids.get(data.review_external_id)
            if review_id is None:
                review = await ctx.review_repo.get_by_external_id(data.review_external_id)
                review_id = review.id if review else None
        await ctx.comment_repo.upsert(
            activity.id,
            data,
            author_id=await self._resolve_actor(ctx, data.author),
            review_id=review_id,
        )

    async def _sync_commits(
        self,
        ctx: _SyncSession,
        repo: _RepoRef,
        since: datetime,
        result: SyncResult,
    ) -> None:
        page_delay = self._settings.sync.page_delay_ms / 1000
        async for commits in self._client.iter_commits(
            repo.owner, repo.name, since=since, page_delay=page_delay
        ):
            for data in commits:
                try:
                    if not data.has_stats:
                        try:
                            data = await self._client.get_commit(repo.owner, repo.name, data.sha)
                        except GitHubClientError as e:
                            bind_repo(repo.full_name).warning(
                                "Detail fetch failed for commit {}: {}", data.sha[:7], e
                            )
                    await self._store_commit(ctx, repo, data)
                    await ctx.commits.record_success()
                    result.commits_synced += 1
                except Exception as e:
                    bind_repo(repo.full_name).warning(
                        "Failed to sync commit {}: {}", data.sha[:7], e
                    )
                    await ctx.rollback()
                    result.add_error(f"Commit {repo.full_name}@{data.sha[:7]}", e)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _store_commit(
        self, ctx: _SyncSession, repo: _RepoRef, data: CommitData
    ) -> Commit:
        commit, _ = await ctx.commit_repo.upsert(
            repo.id,
            data,
            author_id=await self._resolve_actor(ctx, data.author),
            committer_id=await self._resolve_actor(ctx, data.committer),
        )
        return commit

    async def _resolve_actor(self, ctx: _SyncSession, data: ActorData | None) -> int | None:
        """Find or create the local actor for a referenced GitHub user.

        Unknown users are fetched from /users/{login}; if that fails the
        profile embedded in the referencing payload is stored instead.

        Returns:
            Local actor id, or None when the user can't be stored
        """
        if data is None:
            return None
        if data.username in ctx.actor_ids:
            return ctx.actor_ids[data.username]

        actor = await ctx.actor_repo.get_by_username(data.username)
        if actor is None:
            profile: ActorData | None = data
            try:
                profile = await self._client.get_user(data.username)
            except GitHubClientError as e:
                logger.warning("Profile fetch failed for {}: {}", data.username, e)
                if not data.is_complete:
                    profile = None
            if profile is not None:
                actor, _ = await ctx.actor_repo.upsert(profile)

        actor_id = actor.id if actor is not None else None
        ctx.actor_ids[data.username] = actor_id
        return actor_id


async def _courtesy_sleep(delay_ms: int) -> None:
    if delay_ms > 0:
        await asyncio.sleep(delay_ms / 1000)
