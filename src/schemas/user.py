"""Pydantic schemas for user endpoints."""
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """
    The authenticated identity.

    Clients use `id` as the owner their bookmark queries and feed
    subscriptions are scoped to.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    auth0_id: str
    email: str | None
