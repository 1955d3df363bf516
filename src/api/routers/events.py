"""Server-Sent Events stream of the current user's bookmark changes."""
import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_change_feed, get_current_user, get_settings
from core.auth import security
from core.config import Settings
from models.user import User
from schemas.change_event import ChangeEvent
from services.change_feed import ChangeFeed


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable nginx buffering for SSE
}


def format_sse_event(event: ChangeEvent) -> str:
    """Format a change event as an SSE frame named after its kind."""
    return f"event: {event.kind}\ndata: {event.model_dump_json()}\n\n"


async def bookmark_event_stream(
    feed: ChangeFeed,
    owner_id: UUID,
    is_disconnected: Callable[[], Awaitable[bool]],
    ping_interval: float,
) -> AsyncIterator[str]:
    """
    Yield SSE frames for owner_id's change events until the client disconnects.

    The feed subscription is created when iteration starts and released when
    the generator exits for any reason (disconnect, cancellation, error).
    """
    queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
    subscription = feed.subscribe(owner_id, queue.put_nowait)
    try:
        yield ": connected\n\n"
        while not await is_disconnected():
            try:
                event = await asyncio.wait_for(queue.get(), timeout=ping_interval)
            except TimeoutError:
                yield ": ping\n\n"
                continue
            yield format_sse_event(event)
    finally:
        feed.unsubscribe(subscription)
        logger.debug("Event stream closed for owner %s", owner_id)


async def get_stream_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session, scope="function"),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Resolve the current user for the event stream.

    The session is function-scoped: it is committed and returned to the pool
    before the response starts streaming.
    """
    return await get_current_user(credentials, db, settings)


@router.get("/bookmarks")
async def stream_bookmark_events(
    request: Request,
    current_user: User = Depends(get_stream_user),
    feed: ChangeFeed = Depends(get_change_feed),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    """
    Stream added/replaced/removed events for the current user's bookmarks.

    Each frame is `event: <kind>` with the JSON-encoded ChangeEvent as data.
    Comment frames (`: ping`) are sent while idle to keep the connection open.
    Events are not replayed: changes made while disconnected are not resent.
    """
    return StreamingResponse(
        bookmark_event_stream(
            feed,
            current_user.id,
            request.is_disconnected,
            settings.sse_ping_interval,
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
