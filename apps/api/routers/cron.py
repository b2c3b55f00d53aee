"""Scheduler-facing trigger for syncing every feed."""

import logging
import secrets

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse

from config import settings
from services.feed_sync import run_feed_sync_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/trigger")
async def trigger_feed_sync(x_cron_secret: str = Header(default="")):
    """
    Sync all feeds from the mirror.
    Called by an external scheduler with the shared `x-cron-secret` header.
    """
    if not secrets.compare_digest(x_cron_secret.encode("utf-8"), settings.CRON_SECRET.encode("utf-8")):
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    logger.info("Starting feed update...")
    try:
        report = await run_feed_sync_service()
    except Exception as exc:
        logger.error("Cron job failed: %s", exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Cron job failed", "message": str(exc)},
        )

    if report.total_count == 0:
        return {"message": "No feeds to update", "updated": 0, "total": 0, "results": []}

    logger.info("Completed. Updated %s/%s feeds", report.updated_count, report.total_count)
    return {
        "message": "Cron job completed",
        "updated": report.updated_count,
        "total": report.total_count,
        "results": [row.as_dict() for row in report.results],
    }
