"""
Reconciler: one view's ordered bookmark list, kept in step with the change feed.

The list is loaded once with `bootstrap` and afterwards changed only by feed
events. Mutations made from this same view are not applied directly; they come
back through the feed like changes from any other session.

Ordering: bootstrap yields newest-first by created_at. Live inserts are put at
the front regardless of created_at, and updates never move a record. Two inserts
from different sessions that arrive out of order therefore stay out of order
until the next bootstrap.
"""
import logging
from typing import Protocol
from uuid import UUID

from client.exceptions import NotAuthenticatedError
from schemas.bookmark import BookmarkResponse
from schemas.change_event import ChangeEvent, ChangeKind

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    """Resolves the identity the view is acting for."""

    async def current_identity(self) -> UUID | None:
        """Return the current user's id, or None when signed out."""
        ...


class QueryService(Protocol):
    """Loads one owner's bookmarks."""

    async def list_where(self, owner: UUID) -> list[BookmarkResponse]:
        """
        Return owner's bookmarks ordered by created_at descending.

        Raises:
            FetchFailedError: If the query fails.
        """
        ...


class Reconciler:
    """
    Held, display-ordered bookmark list for one identity.

    Not shared between views and not safe for concurrent use: events must be
    applied one at a time, each finishing before the next starts.
    """

    def __init__(
        self,
        query_service: QueryService,
        identity_provider: IdentityProvider | None = None,
    ) -> None:
        self._query_service = query_service
        self._identity_provider = identity_provider
        self._records: list[BookmarkResponse] = []

    async def bootstrap(self, owner_id: UUID | None = None) -> tuple[BookmarkResponse, ...]:
        """
        Replace the held list with a fresh query result.

        If owner_id is omitted it is resolved from the identity provider.
        On failure the held list is left exactly as it was, so callers can
        show the error and retry.

        Raises:
            NotAuthenticatedError: If no identity is established.
            FetchFailedError: If the query fails.
        """
        if owner_id is None and self._identity_provider is not None:
            owner_id = await self._identity_provider.current_identity()
        if owner_id is None:
            raise NotAuthenticatedError

        records = await self._query_service.list_where(owner_id)
        self._records = list(records)
        logger.debug("Bootstrapped %d bookmarks for owner %s", len(self._records), owner_id)
        return self.current_snapshot()

    def apply_added(self, record: BookmarkResponse) -> None:
        """Put a new record at the front; ignored if its id is already held."""
        if self._index_of(record.id) is not None:
            return
        self._records.insert(0, record)

    def apply_replaced(self, record: BookmarkResponse) -> None:
        """Swap in the new version of a held record, keeping its position."""
        index = self._index_of(record.id)
        if index is None:
            return
        self._records[index] = record

    def apply_removed(self, bookmark_id: UUID) -> None:
        """Drop the record with bookmark_id if it is held."""
        index = self._index_of(bookmark_id)
        if index is None:
            return
        del self._records[index]

    def apply(self, event: ChangeEvent) -> None:
        """Apply a parsed feed event."""
        if event.kind == ChangeKind.ADDED:
            self.apply_added(event.record)
        elif event.kind == ChangeKind.REPLACED:
            self.apply_replaced(event.record)
        else:
            self.apply_removed(event.bookmark_id)

    def current_snapshot(self) -> tuple[BookmarkResponse, ...]:
        """Held records in display order."""
        return tuple(self._records)

    def _index_of(self, bookmark_id: UUID) -> int | None:
        for index, held in enumerate(self._records):
            if held.id == bookmark_id:
                return index
        return None

    def __len__(self) -> int:
        return len(self._records)
