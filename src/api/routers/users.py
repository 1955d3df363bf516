"""User endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_owner, get_current_user
from models.user import User
from schemas.user import UserResponse
from services import user_service


router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)) -> User:
    """
    Get the current authenticated user's info.

    Returns 401 when signed out; clients treat that as "no identity".
    """
    return current_user


@router.delete("/me", status_code=204)
async def delete_me(
    current_user: User = Depends(get_current_owner),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete the current user and all of their bookmarks."""
    await user_service.delete_user(db, current_user)
