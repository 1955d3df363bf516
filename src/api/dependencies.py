"""FastAPI dependencies for injection."""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import get_current_user
from core.config import get_settings
from db.session import apply_owner_scope, get_async_session
from models.user import User
from services.change_feed import get_change_feed


async def get_current_owner(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """Current user, with the transaction scoped to them for row-level security."""
    await apply_owner_scope(db, current_user.id)
    return current_user


__all__ = [
    "get_async_session",
    "get_change_feed",
    "get_current_owner",
    "get_current_user",
    "get_settings",
]
