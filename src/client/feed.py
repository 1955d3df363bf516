"""Client side of the change feed: consumes the server's SSE stream."""
import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

import httpx
from pydantic import ValidationError

from schemas.change_event import ChangeEvent

logger = logging.getLogger(__name__)

EVENTS_PATH = "/events/bookmarks"

# No read timeout: the server sends pings while idle
STREAM_TIMEOUT = httpx.Timeout(10.0, read=None)

EventHandler = Callable[[ChangeEvent], None]


def sse_data(line: str) -> str | None:
    """Value of an SSE `data:` field (one optional leading space stripped), else None."""
    if not line.startswith("data:"):
        return None
    value = line[5:]
    return value[1:] if value.startswith(" ") else value


def parse_feed_payload(data: str, owner: UUID) -> ChangeEvent | None:
    """
    Parse one SSE data payload into a ChangeEvent.

    Returns None (and logs) for payloads that are not a valid event or that
    belong to a different owner, so they never reach the Reconciler.
    """
    try:
        event = ChangeEvent.model_validate_json(data)
    except ValidationError as e:
        logger.warning("Rejected malformed change event: %s", e)
        return None
    if event.owner != owner:
        logger.warning("Rejected change event for another owner: %s", event.owner)
        return None
    return event


@dataclass(eq=False)
class FeedSubscription:
    """Handle for one live SSE subscription."""

    owner_id: UUID
    task: asyncio.Task
    released: bool = False


class SseChangeFeed:
    """
    Subscribes to the server's event stream for one owner.

    Each subscription runs a background task that reads the stream and calls
    `on_event` for each event, one at a time, in delivery order. There is no
    reconnect or replay: if the stream ends, the subscription goes quiet.
    """

    def __init__(self, client: httpx.AsyncClient, path: str = EVENTS_PATH) -> None:
        self._client = client
        self._path = path

    def subscribe(self, owner: UUID, on_event: EventHandler) -> FeedSubscription:
        """Start streaming owner's events to on_event. Must be called from a running loop."""
        task = asyncio.create_task(self._consume(owner, on_event))
        return FeedSubscription(owner_id=owner, task=task)

    def unsubscribe(self, subscription: FeedSubscription | None) -> None:
        """
        Stop a subscription.

        Releasing None or an already-released subscription does nothing.
        """
        if subscription is None or subscription.released:
            return
        subscription.released = True
        subscription.task.cancel()

    async def aclose(self, subscription: FeedSubscription | None) -> None:
        """Stop a subscription and wait for its stream to close."""
        self.unsubscribe(subscription)
        if subscription is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await subscription.task

    async def _consume(self, owner: UUID, on_event: EventHandler) -> None:
        try:
            async with self._client.stream(
                "GET",
                self._path,
                headers={"Accept": "text/event-stream"},
                timeout=STREAM_TIMEOUT,
            ) as response:
                response.raise_for_status()
                logger.info("Change feed connected for owner %s", owner)
                async for line in response.aiter_lines():
                    data = sse_data(line)
                    if data is None:
                        continue
                    event = parse_feed_payload(data, owner)
                    if event is None:
                        continue
                    try:
                        on_event(event)
                    except Exception:
                        logger.exception(
                            "Change feed handler failed on %s event for owner %s",
                            event.kind,
                            owner,
                        )
        except httpx.HTTPError as e:
            logger.warning("Change feed stream ended for owner %s: %s", owner, e)
