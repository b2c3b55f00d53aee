"""
Social Feed Hub - FastAPI Backend
Main application entry point with health check and API routing.
"""

import asyncio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from config import settings, validate_security_settings
from database import engine, Base
import models  # noqa: F401
from routers import ai, cron, feeds, health
from services.feed_sync import run_feed_sync_service


async def _periodic_feed_sync() -> None:
    interval_minutes = max(int(settings.FEED_SYNC_INTERVAL_MINUTES), 0)
    if interval_minutes <= 0:
        return
    while True:
        await asyncio.sleep(interval_minutes * 60)
        try:
            report = await run_feed_sync_service()
            print(
                f"📰 Feed sync tick: updated={report.updated_count} "
                f"total={report.total_count} failed={report.failed_count}"
            )
        except Exception as exc:
            print(f"⚠️ Feed sync tick failed: {exc}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting Social Feed Hub API...")
    validate_security_settings()
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print("🗄️ Database schema verified.")
        except Exception as e:
            print(f"⚠️ Database bootstrap skipped: {e}")
    feed_sync_task = None
    if int(settings.FEED_SYNC_INTERVAL_MINUTES) > 0:
        feed_sync_task = asyncio.create_task(_periodic_feed_sync())
        print(
            "📅 Feed sync loop enabled "
            f"(every {int(settings.FEED_SYNC_INTERVAL_MINUTES)} min)."
        )
    yield
    # Shutdown
    if feed_sync_task is not None:
        feed_sync_task.cancel()
        try:
            await feed_sync_task
        except asyncio.CancelledError:
            pass
    print("👋 Shutting down API...")


app = FastAPI(
    title="Social Feed Hub API",
    description="Aggregate public social profiles into one feed with AI summaries",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(feeds.router, prefix="/feeds", tags=["Feeds"])
app.include_router(ai.router, prefix="/ai", tags=["AI"])
app.include_router(cron.router, prefix="/cron", tags=["Cron"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Social Feed Hub API",
        "version": "0.1.0",
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.API_HOST, port=settings.API_PORT)
