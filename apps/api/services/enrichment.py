"""AI enrichment over stored posts: feed summary, post summary, reply suggestions."""

from __future__ import annotations

import logging

from config import settings
from llm.client import CompletionClient, CompletionConfig
from models.post import Post
from services.feed_store import FeedStore

logger = logging.getLogger(__name__)


NO_FEEDS_SUMMARY = "No feeds available to summarize."
NO_POSTS_SUMMARY = "No posts available to summarize."


class NotFoundOrUnauthorizedError(LookupError):
    """Raised when a post is missing or belongs to another user's feed."""

    def __init__(self, post_id: str) -> None:
        super().__init__("Post not found or unauthorized")
        self.post_id = post_id


def completion_config_from_settings() -> CompletionConfig:
    """Snapshot Gemini settings into the value handed to CompletionClient."""
    return CompletionConfig(
        api_key=(settings.GEMINI_API_KEY or "").strip(),
        model=settings.GEMINI_MODEL,
        api_url=settings.GEMINI_API_URL.rstrip("/"),
        timeout_seconds=float(settings.COMPLETION_TIMEOUT_SECONDS),
        max_attempts=max(int(settings.COMPLETION_MAX_ATTEMPTS), 1),
        backoff_base_seconds=float(settings.COMPLETION_BACKOFF_BASE_SECONDS),
    )


def get_completion_client() -> CompletionClient:
    return CompletionClient(completion_config_from_settings())


class EnrichmentService:
    """Read-then-generate operations scoped to an authenticated user."""

    def __init__(self, completion_client: CompletionClient, store: FeedStore, summary_post_limit: int = 20):
        self.completion_client = completion_client
        self.store = store
        self.summary_post_limit = max(int(summary_post_limit), 1)

    async def summarize_feed_for(self, user_id: str) -> str:
        feed_ids = await self.store.get_feed_ids_for_user(user_id)
        if not feed_ids:
            return NO_FEEDS_SUMMARY

        posts = await self.store.get_posts_by_feed_ids(feed_ids, limit=self.summary_post_limit, offset=0)
        if not posts:
            return NO_POSTS_SUMMARY

        return await self.completion_client.summarize_feed(
            [
                {
                    "username": post.username or "Unknown",
                    "platform": post.platform,
                    "description": post.description or "",
                }
                for post in posts
            ]
        )

    async def summarize_post(self, post_id: str, user_id: str) -> str:
        post = await self._owned_post(post_id, user_id)
        return await self.completion_client.summarize_post(post.description or "")

    async def suggest_replies_for(self, post_id: str, user_id: str) -> str:
        post = await self._owned_post(post_id, user_id)
        return await self.completion_client.suggest_replies(post.description or "")

    async def _owned_post(self, post_id: str, user_id: str) -> Post:
        post = await self.store.get_post(post_id)
        if post is None:
            raise NotFoundOrUnauthorizedError(post_id)
        owner_id = await self.store.get_feed_owner(post.feed_id)
        if not owner_id or owner_id != user_id:
            logger.warning("Rejected enrichment for post=%s user=%s", post_id, user_id)
            raise NotFoundOrUnauthorizedError(post_id)
        return post


def build_enrichment_service(store: FeedStore) -> EnrichmentService:
    return EnrichmentService(
        get_completion_client(),
        store,
        summary_post_limit=settings.FEED_SUMMARY_POST_LIMIT,
    )
