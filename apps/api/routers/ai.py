"""AI enrichment router (Gemini summaries and reply suggestions)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from llm.client import CompletionFailureError, MissingCredentialError
from routers.auth_scope import AuthContext, get_auth_context
from routers.rate_limit import rate_limit
from services.enrichment import EnrichmentService, NotFoundOrUnauthorizedError, build_enrichment_service
from services.feed_store import FeedStore

router = APIRouter()


class PostTargetRequest(BaseModel):
    post_id: str = Field(min_length=1)


class SummaryResponse(BaseModel):
    summary: str


class SuggestionsResponse(BaseModel):
    suggestions: str


def get_enrichment_service(db: AsyncSession = Depends(get_db)) -> EnrichmentService:
    return build_enrichment_service(FeedStore(db))


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, NotFoundOrUnauthorizedError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, MissingCredentialError):
        return HTTPException(status_code=503, detail=str(exc))
    return HTTPException(status_code=502, detail=str(exc))


@router.post("/summarize-feed", response_model=SummaryResponse)
async def summarize_feed(
    _rate_limit: None = Depends(rate_limit("ai_summarize_feed", limit=30, window_seconds=3600)),
    auth: AuthContext = Depends(get_auth_context),
    service: EnrichmentService = Depends(get_enrichment_service),
):
    try:
        summary = await service.summarize_feed_for(auth.user_id)
    except (MissingCredentialError, CompletionFailureError) as exc:
        raise _to_http_error(exc) from exc
    return {"summary": summary}


@router.post("/summarize-post", response_model=SummaryResponse)
async def summarize_post(
    request: PostTargetRequest,
    _rate_limit: None = Depends(rate_limit("ai_summarize_post", limit=120, window_seconds=3600)),
    auth: AuthContext = Depends(get_auth_context),
    service: EnrichmentService = Depends(get_enrichment_service),
):
    try:
        summary = await service.summarize_post(request.post_id, auth.user_id)
    except (NotFoundOrUnauthorizedError, MissingCredentialError, CompletionFailureError) as exc:
        raise _to_http_error(exc) from exc
    return {"summary": summary}


@router.post("/suggest-replies", response_model=SuggestionsResponse)
async def suggest_replies(
    request: PostTargetRequest,
    _rate_limit: None = Depends(rate_limit("ai_suggest_replies", limit=120, window_seconds=3600)),
    auth: AuthContext = Depends(get_auth_context),
    service: EnrichmentService = Depends(get_enrichment_service),
):
    try:
        suggestions = await service.suggest_replies_for(request.post_id, auth.user_id)
    except (NotFoundOrUnauthorizedError, MissingCredentialError, CompletionFailureError) as exc:
        raise _to_http_error(exc) from exc
    return {"suggestions": suggestions}
