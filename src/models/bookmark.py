"""Bookmark model for storing user bookmarks."""
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, CreatedAtMixin, UUIDMixin

if TYPE_CHECKING:
    from models.user import User


class Bookmark(Base, UUIDMixin, CreatedAtMixin):
    """
    Bookmark model - a titled URL owned by exactly one user.

    id, user_id and created_at are set at insert and never change afterwards;
    only title and url are editable.
    """

    __tablename__ = "bookmarks"
    __table_args__ = (
        # Serves the "my bookmarks, newest first" query
        Index("ix_bookmarks_user_id_created_at", "user_id", text("created_at DESC")),
    )

    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)

    user: Mapped["User"] = relationship(back_populates="bookmarks")
