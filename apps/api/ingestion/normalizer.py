"""Convert raw mirror items into canonical post values."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from ingestion.types import NormalizedPost, RawPost


def _text(value: Any) -> str:
    return str(value) if value is not None else ""


def _synthesized_post_id(now: datetime) -> str:
    return f"{int(now.timestamp() * 1000)}-{uuid.uuid4().hex}"


def _published_at(value: Any, now: datetime) -> datetime:
    if isinstance(value, bool):
        return now
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return now
    if seconds <= 0:
        return now
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return now


def normalize_post(
    raw: RawPost,
    platform: str,
    feed_id: str,
    *,
    now: Optional[datetime] = None,
) -> NormalizedPost:
    """Map one mirror item onto the Post shape; missing fields fall back to defaults."""
    current = now or datetime.now(timezone.utc)
    raw = raw if isinstance(raw, dict) else {}

    enclosures = raw.get("enclosures")
    first_enclosure = enclosures[0] if isinstance(enclosures, list) and enclosures else None
    media_url = None
    if isinstance(first_enclosure, dict):
        media_url = _text(first_enclosure.get("url")) or None

    return NormalizedPost(
        feed_id=feed_id,
        platform=_text(platform).lower(),
        platform_post_id=_text(raw.get("uri")) or _synthesized_post_id(current),
        username=_text(raw.get("author")) or "Unknown",
        avatar_url=_text(raw.get("avatar")) or None,
        media_type="image" if first_enclosure is not None else "text",
        media_url=media_url,
        description=_text(raw.get("content")) or _text(raw.get("title")),
        # Mirrors do not expose engagement metrics.
        likes=0,
        comments=0,
        created_at=_published_at(raw.get("timestamp"), current),
    )
