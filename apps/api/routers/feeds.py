"""Feed registration and post listing router."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from routers.auth_scope import AuthContext, ensure_user, get_auth_context
from routers.rate_limit import rate_limit
from services.feed_store import FeedStore
from services.feed_sync import add_feed_service

router = APIRouter()


class AddFeedRequest(BaseModel):
    platform: Literal["instagram", "twitter", "tiktok", "threads", "bluesky"]
    profile_url: str = Field(min_length=1)
    username: str = ""


class FeedResponse(BaseModel):
    id: str
    user_id: str
    platform: str
    username: str
    profile_url: str
    avatar_url: Optional[str] = None
    created_at: Optional[str] = None


class InitialSyncResponse(BaseModel):
    status: str
    fetched_count: int
    inserted_count: int
    duplicate_count: int
    reason: Optional[str] = None


class AddFeedResponse(BaseModel):
    feed: FeedResponse
    initial_sync: InitialSyncResponse


class PostResponse(BaseModel):
    id: str
    feed_id: str
    platform: str
    platform_post_id: str
    username: str
    avatar_url: Optional[str] = None
    media_type: str
    media_url: Optional[str] = None
    description: str
    likes: int
    comments: int
    created_at: Optional[str] = None


def _post_payload(post: Any) -> Dict[str, Any]:
    return {
        "id": post.id,
        "feed_id": post.feed_id,
        "platform": post.platform,
        "platform_post_id": post.platform_post_id,
        "username": post.username,
        "avatar_url": post.avatar_url,
        "media_type": post.media_type,
        "media_url": post.media_url,
        "description": post.description or "",
        "likes": int(post.likes or 0),
        "comments": int(post.comments or 0),
        "created_at": post.created_at.isoformat() if post.created_at else None,
    }


@router.post("", response_model=AddFeedResponse)
async def add_feed(
    request: AddFeedRequest,
    _rate_limit: None = Depends(rate_limit("feed_add", limit=60, window_seconds=3600)),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    await ensure_user(db, auth)
    return await add_feed_service(
        user_id=auth.user_id,
        platform=request.platform,
        profile_url=request.profile_url,
        username=request.username,
        db=db,
    )


@router.get("/posts", response_model=List[PostResponse])
async def list_posts(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    store = FeedStore(db)
    feed_ids = await store.get_feed_ids_for_user(auth.user_id)
    posts = await store.get_posts_by_feed_ids(feed_ids, limit=limit, offset=offset)
    return [_post_payload(post) for post in posts]
