"""Mirror ingestion contracts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Literal, Optional, Tuple


PlatformKey = Literal["instagram", "twitter", "tiktok", "threads", "bluesky"]

# RSS-Bridge bridge identifiers per platform.
BRIDGE_NAMES: Dict[str, str] = {
    "instagram": "Instagram",
    "twitter": "Twitter",
    "tiktok": "TikTok",
    "threads": "Threads",
    "bluesky": "BlueSky",
}
SUPPORTED_PLATFORMS = frozenset(BRIDGE_NAMES)

RawPost = Dict[str, Any]


class UnsupportedPlatformError(ValueError):
    """Raised before any request when a platform has no mirror bridge."""

    def __init__(self, platform: str) -> None:
        super().__init__(f"Unsupported platform: {platform}")
        self.platform = platform


class FetchFailureError(RuntimeError):
    """Raised when every mirror endpoint failed for one profile."""

    def __init__(self, platform: str, username: str) -> None:
        super().__init__(f"Failed to fetch from mirror for {platform}/{username}")
        self.platform = platform
        self.username = username


@dataclass(frozen=True)
class MirrorConfig:
    endpoints: Tuple[str, ...]
    timeout_seconds: float = 10.0
    max_concurrent_requests: int = 1


@dataclass(frozen=True)
class FeedRecord:
    """Detached snapshot of a Feed row, safe to pass across sessions."""

    id: str
    user_id: str
    platform: str
    username: str

    @classmethod
    def from_model(cls, feed: Any) -> "FeedRecord":
        return cls(
            id=str(feed.id),
            user_id=str(feed.user_id),
            platform=str(feed.platform),
            username=str(feed.username),
        )


@dataclass(frozen=True)
class NormalizedPost:
    feed_id: str
    platform: str
    platform_post_id: str
    username: str
    avatar_url: Optional[str]
    media_type: str
    media_url: Optional[str]
    description: str
    likes: int
    comments: int
    created_at: datetime
