"""Service layer for account-level operations."""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from models.user import User
from schemas.change_event import ChangeEvent
from services.change_feed import stage_change

logger = logging.getLogger(__name__)


async def delete_user(db: AsyncSession, user: User) -> int:
    """
    Delete a user; their bookmarks go with them via ON DELETE CASCADE.

    A `removed` event is staged for every cascaded bookmark so that open views
    drop them once the transaction commits.

    Note: Does not commit. Caller (session generator) handles commit at request end.

    Returns:
        Number of bookmarks removed.
    """
    result = await db.execute(select(Bookmark.id).where(Bookmark.user_id == user.id))
    bookmark_ids = list(result.scalars().all())

    await db.delete(user)
    await db.flush()

    for bookmark_id in bookmark_ids:
        stage_change(db, ChangeEvent.removed(user.id, bookmark_id))
    logger.info("Deleted user %s and %d bookmark(s)", user.id, len(bookmark_ids))
    return len(bookmark_ids)
