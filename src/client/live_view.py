"""A mounted bookmark list: one Reconciler plus at most one feed subscription."""
import logging
from collections.abc import Callable
from types import TracebackType
from typing import Any, Protocol
from uuid import UUID

from client.exceptions import FetchFailedError, NotAuthenticatedError
from client.reconciler import IdentityProvider, QueryService, Reconciler
from schemas.bookmark import BookmarkResponse
from schemas.change_event import ChangeEvent

logger = logging.getLogger(__name__)


class ChangeFeedSource(Protocol):
    """Anything that can deliver one owner's change events to a callback."""

    def subscribe(self, owner: UUID, on_event: Callable[[ChangeEvent], None]) -> Any:
        """Start delivering events; returns a handle for unsubscribe."""
        ...

    def unsubscribe(self, subscription: Any) -> None:
        """Stop delivering events; no-op for None or released handles."""
        ...


class BookmarkApi(IdentityProvider, QueryService, Protocol):
    """Identity and query collaborators used by a view."""


class LiveBookmarkView:
    """
    Keeps one identity's bookmark list current for display.

    Use as an async context manager. On enter the view resolves the identity,
    subscribes to the feed and bootstraps the list; on exit the subscription is
    released exactly once, whichever way the block is left, and a streaming
    feed has finished closing before the block exits.

    A failed bootstrap does not close the view: the error is exposed on
    `error` and `refresh()` retries. A missing identity raises
    NotAuthenticatedError and nothing is subscribed.
    """

    def __init__(
        self,
        api: BookmarkApi,
        feed: ChangeFeedSource,
        on_change: Callable[[tuple[BookmarkResponse, ...]], None] | None = None,
    ) -> None:
        self._api = api
        self._feed = feed
        self._on_change = on_change
        self._owner_id: UUID | None = None
        self._subscription: Any = None
        self.reconciler = Reconciler(api, api)
        self.error: str | None = None

    @property
    def owner_id(self) -> UUID | None:
        """Identity this view is showing, once opened."""
        return self._owner_id

    @property
    def is_subscribed(self) -> bool:
        """True while a feed subscription is held."""
        return self._subscription is not None

    def snapshot(self) -> tuple[BookmarkResponse, ...]:
        """Current records in display order."""
        return self.reconciler.current_snapshot()

    async def open(self) -> None:
        """
        Resolve identity, subscribe to its events, and load the list.

        Raises:
            NotAuthenticatedError: If nobody is signed in.
        """
        owner_id = await self._api.current_identity()
        if owner_id is None:
            self.error = "Not authenticated"
            raise NotAuthenticatedError
        self._owner_id = owner_id

        if self._subscription is None:
            self._subscription = self._feed.subscribe(owner_id, self._handle_event)
        await self.refresh()

    async def refresh(self) -> bool:
        """
        Re-run bootstrap for the view's identity.

        Returns:
            True on success. On failure the previous list is kept, `error`
            holds the message, and False is returned.
        """
        if self._owner_id is None:
            raise NotAuthenticatedError
        try:
            await self.reconciler.bootstrap(self._owner_id)
        except FetchFailedError as e:
            logger.warning("Bookmark bootstrap failed: %s", e.detail)
            self.error = str(e)
            return False
        self.error = None
        self._notify()
        return True

    def close(self) -> None:
        """Release the feed subscription; safe to call more than once."""
        subscription, self._subscription = self._subscription, None
        self._feed.unsubscribe(subscription)

    async def aclose(self) -> None:
        """
        Release the feed subscription and wait until its stream has shut down.

        Feeds without an async `aclose` (such as the in-process server feed)
        are released synchronously. Safe to call more than once.
        """
        subscription, self._subscription = self._subscription, None
        feed_aclose = getattr(self._feed, "aclose", None)
        if feed_aclose is None:
            self._feed.unsubscribe(subscription)
            return
        await feed_aclose(subscription)

    def _handle_event(self, event: ChangeEvent) -> None:
        self.reconciler.apply(event)
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.snapshot())

    async def __aenter__(self) -> "LiveBookmarkView":
        try:
            await self.open()
        except BaseException:
            await self.aclose()
            raise
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
