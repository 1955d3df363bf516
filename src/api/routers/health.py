"""Health check endpoint."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_change_feed
from services.change_feed import ChangeFeed


logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """
    Health check response.

    `change_feed` is "redis" while events fan out through the Redis relay and
    "in-process" when only this worker's subscribers receive them.
    """

    status: str
    database: str
    change_feed: str
    subscribers: int


async def _database_status(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database health check failed")
        return "unhealthy"
    return "healthy"


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_async_session),
    feed: ChangeFeed = Depends(get_change_feed),
) -> HealthResponse:
    """Report database reachability and how change events are being delivered."""
    database = await _database_status(db)
    return HealthResponse(
        status="healthy" if database == "healthy" else "degraded",
        database=database,
        change_feed="redis" if feed.relay_running else "in-process",
        subscribers=feed.subscriber_count,
    )
