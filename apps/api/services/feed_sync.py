"""Feed synchronization: mirror fetch, normalization and dedup-tolerant insert."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import settings
from database import async_session_maker
from ingestion.mirror import MirrorFetcher
from ingestion.normalizer import normalize_post
from ingestion.types import FeedRecord, FetchFailureError, MirrorConfig, UnsupportedPlatformError
from models.feed import Feed
from services.feed_store import FeedStore

logger = logging.getLogger(__name__)


STATUS_UPDATED = "updated"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass
class FeedSyncResult:
    feed_id: str
    platform: str
    username: str
    status: str
    fetched_count: int = 0
    inserted_count: int = 0
    duplicate_count: int = 0
    reason: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "feed_id": self.feed_id,
            "platform": self.platform,
            "username": self.username,
            "status": self.status,
            "fetched_count": self.fetched_count,
            "inserted_count": self.inserted_count,
            "duplicate_count": self.duplicate_count,
            "reason": self.reason,
        }


@dataclass
class SyncReport:
    results: List[FeedSyncResult] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        return len(self.results)

    @property
    def updated_count(self) -> int:
        return sum(1 for row in self.results if row.status == STATUS_UPDATED)

    @property
    def skipped_count(self) -> int:
        return sum(1 for row in self.results if row.status == STATUS_SKIPPED)

    @property
    def failed_count(self) -> int:
        return sum(1 for row in self.results if row.status == STATUS_FAILED)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "updated": self.updated_count,
            "total": self.total_count,
            "skipped": self.skipped_count,
            "failed": self.failed_count,
            "results": [row.as_dict() for row in self.results],
        }


def mirror_config_from_settings() -> MirrorConfig:
    """Snapshot mirror settings into the value handed to MirrorFetcher."""
    endpoints = tuple(
        str(endpoint).strip().rstrip("/")
        for endpoint in settings.MIRROR_ENDPOINTS
        if str(endpoint).strip()
    )
    return MirrorConfig(
        endpoints=endpoints,
        timeout_seconds=float(settings.MIRROR_TIMEOUT_SECONDS),
    )


def get_mirror_fetcher() -> MirrorFetcher:
    return MirrorFetcher(mirror_config_from_settings())


class FeedSyncOrchestrator:
    """Runs fetch + normalize + insert per feed, isolating failures at the feed boundary."""

    def __init__(
        self,
        fetcher: MirrorFetcher,
        session_maker: async_sessionmaker,
        post_limit: int = 20,
    ):
        self.fetcher = fetcher
        self.session_maker = session_maker
        self.post_limit = max(int(post_limit), 1)

    async def sync_all(self, feeds: Sequence[FeedRecord]) -> SyncReport:
        """Sync feeds sequentially; a failure in one feed never reaches its siblings."""
        report = SyncReport()
        for feed in feeds:
            logger.info("Updating feed %s/%s", feed.platform, feed.username)
            try:
                async with self.session_maker() as db:
                    result = await self.sync_feed(feed, db)
            except Exception as exc:
                logger.error("Error updating feed %s: %s", feed.id, exc, exc_info=True)
                result = FeedSyncResult(
                    feed_id=feed.id,
                    platform=feed.platform,
                    username=feed.username,
                    status=STATUS_FAILED,
                    reason=str(exc)[:500],
                )
            report.results.append(result)

        logger.info("Feed sync completed updated=%s total=%s", report.updated_count, report.total_count)
        return report

    async def sync_feed(
        self,
        feed: FeedRecord,
        db: AsyncSession,
        limit: Optional[int] = None,
    ) -> FeedSyncResult:
        result = FeedSyncResult(
            feed_id=feed.id,
            platform=feed.platform,
            username=feed.username,
            status=STATUS_SKIPPED,
        )
        try:
            items = await self.fetcher.fetch(feed.platform, feed.username)
        except (FetchFailureError, UnsupportedPlatformError) as exc:
            logger.warning("Skipping feed %s/%s: %s", feed.platform, feed.username, exc)
            result.reason = str(exc)
            return result

        result.fetched_count = len(items)
        if not items:
            logger.warning("No posts found for %s/%s", feed.platform, feed.username)
            result.reason = "No posts found"
            return result

        cap = self.post_limit if limit is None else max(int(limit), 1)
        posts = [normalize_post(item, feed.platform, feed.id) for item in items[:cap]]

        try:
            outcome = await FeedStore(db).insert_posts(posts)
        except Exception as exc:
            logger.error("Failed to insert posts for %s: %s", feed.id, exc)
            result.status = STATUS_FAILED
            result.reason = str(exc)[:500]
            return result

        result.status = STATUS_UPDATED
        result.inserted_count = outcome.inserted
        result.duplicate_count = outcome.duplicates
        logger.info(
            "Updated %s posts for %s/%s (inserted=%s duplicates=%s)",
            len(posts),
            feed.platform,
            feed.username,
            outcome.inserted,
            outcome.duplicates,
        )
        return result

    async def initial_sync(
        self,
        feed: FeedRecord,
        db: AsyncSession,
        limit: int = 10,
    ) -> FeedSyncResult:
        """Add-time sync; never raises so feed creation always succeeds."""
        try:
            return await self.sync_feed(feed, db, limit=limit)
        except Exception as exc:
            logger.warning("Failed to fetch initial posts for %s/%s: %s", feed.platform, feed.username, exc)
            return FeedSyncResult(
                feed_id=feed.id,
                platform=feed.platform,
                username=feed.username,
                status=STATUS_FAILED,
                reason=str(exc)[:500],
            )


def _username_from_profile_url(profile_url: str) -> str:
    segments = [segment for segment in str(profile_url or "").split("/") if segment]
    return segments[-1] if segments else "unknown"


def _serialize_feed(feed: Feed) -> Dict[str, Any]:
    return {
        "id": feed.id,
        "user_id": feed.user_id,
        "platform": feed.platform,
        "username": feed.username,
        "profile_url": feed.profile_url,
        "avatar_url": feed.avatar_url,
        "created_at": feed.created_at.isoformat() if feed.created_at else None,
    }


async def run_feed_sync_service(
    fetcher: Optional[MirrorFetcher] = None,
) -> SyncReport:
    """Sync every registered feed (cron / periodic scheduler entrypoint)."""
    async with async_session_maker() as db:
        feeds = await FeedStore(db).list_feeds()
    orchestrator = FeedSyncOrchestrator(
        fetcher or get_mirror_fetcher(),
        async_session_maker,
        post_limit=settings.FEED_SYNC_POST_LIMIT,
    )
    return await orchestrator.sync_all(feeds)


async def add_feed_service(
    *,
    user_id: str,
    platform: str,
    profile_url: str,
    username: Optional[str],
    db: AsyncSession,
    fetcher: Optional[MirrorFetcher] = None,
) -> Dict[str, Any]:
    """Create a feed for the user and pull its first posts."""
    resolved_username = (username or "").strip() or _username_from_profile_url(profile_url)
    feed = Feed(
        user_id=user_id,
        platform=platform.lower(),
        profile_url=profile_url,
        username=resolved_username,
        avatar_url=None,
    )
    db.add(feed)
    await db.commit()
    await db.refresh(feed)
    payload = _serialize_feed(feed)

    orchestrator = FeedSyncOrchestrator(
        fetcher or get_mirror_fetcher(),
        async_session_maker,
        post_limit=settings.FEED_SYNC_POST_LIMIT,
    )
    result = await orchestrator.initial_sync(
        FeedRecord.from_model(feed),
        db,
        limit=settings.FEED_INITIAL_SYNC_POST_LIMIT,
    )
    return {"feed": payload, "initial_sync": result.as_dict()}
