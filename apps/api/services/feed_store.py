"""Persistence helpers for feeds and posts used by sync and enrichment."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ingestion.types import FeedRecord, NormalizedPost
from models.feed import Feed
from models.post import Post


INSERTED = "inserted"
DUPLICATE = "duplicate"


@dataclass
class InsertOutcome:
    statuses: List[str] = field(default_factory=list)

    @property
    def inserted(self) -> int:
        return sum(1 for status in self.statuses if status == INSERTED)

    @property
    def duplicates(self) -> int:
        return sum(1 for status in self.statuses if status == DUPLICATE)


def _post_row(post: NormalizedPost) -> Post:
    return Post(
        feed_id=post.feed_id,
        platform=post.platform,
        platform_post_id=post.platform_post_id,
        username=post.username,
        avatar_url=post.avatar_url,
        media_type=post.media_type,
        media_url=post.media_url,
        description=post.description,
        likes=post.likes,
        comments=post.comments,
        created_at=post.created_at,
    )


def is_unique_violation(exc: IntegrityError) -> bool:
    message = str(getattr(exc, "orig", None) or exc).lower()
    return "unique" in message or "duplicate" in message


class FeedStore:
    """Thin query layer over an AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_feeds(self) -> List[FeedRecord]:
        result = await self.db.execute(select(Feed).order_by(Feed.created_at, Feed.id))
        return [FeedRecord.from_model(feed) for feed in result.scalars().all()]

    async def get_feed(self, feed_id: str) -> Optional[Feed]:
        result = await self.db.execute(select(Feed).where(Feed.id == feed_id))
        return result.scalar_one_or_none()

    async def get_feed_owner(self, feed_id: str) -> Optional[str]:
        result = await self.db.execute(select(Feed.user_id).where(Feed.id == feed_id))
        return result.scalar_one_or_none()

    async def get_feed_ids_for_user(self, user_id: str) -> List[str]:
        result = await self.db.execute(select(Feed.id).where(Feed.user_id == user_id))
        return [str(feed_id) for feed_id in result.scalars().all()]

    async def get_post(self, post_id: str) -> Optional[Post]:
        result = await self.db.execute(select(Post).where(Post.id == post_id))
        return result.scalar_one_or_none()

    async def get_posts_by_feed_ids(
        self,
        feed_ids: Sequence[str],
        limit: int = 50,
        offset: int = 0,
    ) -> List[Post]:
        if not feed_ids:
            return []
        query = (
            select(Post)
            .where(Post.feed_id.in_(list(feed_ids)))
            .order_by(Post.created_at.desc(), Post.id)
            .offset(max(int(offset), 0))
            .limit(max(int(limit), 1))
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def insert_posts(self, posts: Sequence[NormalizedPost]) -> InsertOutcome:
        """
        Insert posts one row at a time.

        Rows already stored for the same (feed_id, platform_post_id), repeats
        within the batch, and rows rejected by the unique constraint are
        reported as duplicates. Any other integrity error is raised.
        """
        outcome = InsertOutcome()
        if not posts:
            return outcome

        existing = await self.db.execute(
            select(Post.feed_id, Post.platform_post_id).where(
                Post.feed_id.in_(sorted({post.feed_id for post in posts})),
                Post.platform_post_id.in_(sorted({post.platform_post_id for post in posts})),
            )
        )
        seen = {(str(feed_id), str(post_id)) for feed_id, post_id in existing.all()}

        for post in posts:
            key = (post.feed_id, post.platform_post_id)
            if key in seen:
                outcome.statuses.append(DUPLICATE)
                continue
            seen.add(key)

            self.db.add(_post_row(post))
            try:
                await self.db.commit()
            except IntegrityError as exc:
                await self.db.rollback()
                if not is_unique_violation(exc):
                    raise
                outcome.statuses.append(DUPLICATE)
                continue
            outcome.statuses.append(INSERTED)

        return outcome
