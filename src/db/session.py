"""Async SQLAlchemy session factory."""
from collections.abc import AsyncGenerator
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.config import get_settings
from services.change_feed import (
    discard_staged_changes,
    get_change_feed,
    publish_staged_changes,
)


settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """
    Yield an async database session.

    Uses unit-of-work pattern: services use flush() for refreshing objects,
    commit happens once here at request end. This ensures atomic transactions
    per request - if anything fails, all changes are rolled back.

    Change events staged by services are published only after the commit
    succeeds, and dropped on rollback.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            discard_staged_changes(session)
            raise
        await publish_staged_changes(session, get_change_feed())


async def apply_owner_scope(db: AsyncSession, user_id: UUID) -> None:
    """
    Bind the current transaction to one owner for row-level security.

    The bookmarks table's RLS policies compare user_id against the
    transaction-local `app.current_user_id` setting.
    """
    await db.execute(
        text("SELECT set_config('app.current_user_id', :user_id, true)"),
        {"user_id": str(user_id)},
    )
