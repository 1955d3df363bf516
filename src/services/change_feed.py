"""
Publish/subscribe change feed for bookmark mutations.

Every committed create/update/delete produces one ChangeEvent. Subscribers
register a callback filtered to a single owner; events are delivered to
matching callbacks one at a time, in publish order.

When Redis is reachable, events travel through a Redis pub/sub channel so
that subscribers connected to any worker process receive them. A relay task
(started in the app lifespan) reads the channel and dispatches locally. If
Redis is disabled, unreachable, or the relay has stopped, events are
dispatched in-process instead.
"""
import logging
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from pydantic import ValidationError
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from core.redis import RedisClient
from schemas.change_event import ChangeEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[ChangeEvent], None]

# Key in AsyncSession.info holding events staged by the current transaction
PENDING_CHANGES_KEY = "pending_changes"


@dataclass(eq=False)
class Subscription:
    """Handle returned by ChangeFeed.subscribe; pass it back to unsubscribe."""

    owner_id: UUID
    on_event: EventHandler
    active: bool = True


class ChangeFeed:
    """Owner-filtered fan-out of bookmark change events."""

    def __init__(
        self,
        redis_client: RedisClient | None = None,
        channel: str = "bookmark-changes",
    ) -> None:
        self._redis = redis_client
        self._channel = channel
        self._subscriptions: list[Subscription] = []
        self._relay_running = False

    @property
    def subscriber_count(self) -> int:
        """Number of live subscriptions."""
        return len(self._subscriptions)

    @property
    def relay_running(self) -> bool:
        """True while the Redis relay is consuming the channel."""
        return self._relay_running

    def subscribe(self, owner_id: UUID, on_event: EventHandler) -> Subscription:
        """Register a callback for events belonging to owner_id."""
        subscription = Subscription(owner_id=owner_id, on_event=on_event)
        self._subscriptions.append(subscription)
        logger.debug("Change feed subscription added for owner %s", owner_id)
        return subscription

    def unsubscribe(self, subscription: Subscription | None) -> None:
        """
        Release a subscription.

        Releasing None or an already-released subscription does nothing.
        """
        if subscription is None or not subscription.active:
            return
        subscription.active = False
        self._subscriptions.remove(subscription)
        logger.debug("Change feed subscription released for owner %s", subscription.owner_id)

    def dispatch(self, event: ChangeEvent) -> int:
        """
        Deliver an event to every matching subscriber in this process.

        A failing callback is logged and does not prevent delivery to the
        remaining subscribers.

        Returns:
            Number of subscribers the event was delivered to.
        """
        delivered = 0
        for subscription in list(self._subscriptions):
            if not subscription.active or subscription.owner_id != event.owner:
                continue
            try:
                subscription.on_event(event)
            except Exception:
                logger.exception(
                    "Change feed subscriber failed handling %s event", event.kind,
                )
                continue
            delivered += 1
        return delivered

    async def publish(self, event: ChangeEvent) -> None:
        """Publish an event via Redis when the relay is running, else in-process."""
        if self._redis is not None and self._relay_running:
            published = await self._redis.publish(self._channel, event.model_dump_json())
            if published:
                return
        self.dispatch(event)

    def dispatch_raw(self, payload: str | bytes) -> bool:
        """
        Parse a serialized event and dispatch it.

        Returns:
            False if the payload was rejected as malformed.
        """
        try:
            event = ChangeEvent.model_validate_json(payload)
        except ValidationError as e:
            logger.warning("Dropping malformed change event: %s", e)
            return False
        self.dispatch(event)
        return True

    async def run_relay(self) -> None:
        """
        Consume the Redis channel and dispatch received events locally.

        Returns immediately if Redis is unavailable. Runs until cancelled or
        until the Redis connection fails, after which publish falls back to
        in-process dispatch.
        """
        pubsub = await self._redis.subscribe(self._channel) if self._redis is not None else None
        if pubsub is None:
            logger.info("Change feed relay not started: Redis unavailable")
            return

        try:
            self._relay_running = True
            logger.info("Change feed relay listening on %s", self._channel)
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                self.dispatch_raw(message["data"])
        except RedisError as e:
            logger.warning("Change feed relay stopped: %s", e)
        finally:
            self._relay_running = False
            await pubsub.aclose()


def stage_change(db: AsyncSession, event: ChangeEvent) -> None:
    """
    Queue an event to be published once the session's transaction commits.

    Note: Does not publish. The session generator publishes after commit.
    """
    db.info.setdefault(PENDING_CHANGES_KEY, []).append(event)


def discard_staged_changes(db: AsyncSession) -> None:
    """Drop staged events (used when the transaction rolls back)."""
    db.info.pop(PENDING_CHANGES_KEY, None)


async def publish_staged_changes(db: AsyncSession, feed: ChangeFeed) -> int:
    """
    Publish and clear the events staged on a session, in staging order.

    Returns:
        Number of events published.
    """
    pending: list[ChangeEvent] = db.info.pop(PENDING_CHANGES_KEY, [])
    for event in pending:
        await feed.publish(event)
    return len(pending)


# Global change feed instance (replaced during app lifespan)
_change_feed: ChangeFeed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    """Get the global change feed instance."""
    return _change_feed


def set_change_feed(feed: ChangeFeed) -> None:
    """Set the global change feed instance."""
    global _change_feed  # noqa: PLW0603
    _change_feed = feed
