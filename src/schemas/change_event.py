"""Pydantic schemas for change-feed events."""
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, model_validator

from schemas.bookmark import BookmarkResponse


class ChangeKind(StrEnum):
    """Kind of change delivered on the feed."""

    ADDED = "added"
    REPLACED = "replaced"
    REMOVED = "removed"


class ChangeEvent(BaseModel):
    """
    A single insert/update/delete notification for one owner's bookmark.

    `added` and `replaced` carry the full record; `removed` carries only the id.
    Payloads that don't match this shape fail validation, so consumers can
    reject them before touching any held state.
    """

    model_config = ConfigDict(frozen=True)

    kind: ChangeKind
    owner: UUID
    record: BookmarkResponse | None = None
    id: UUID | None = None

    @model_validator(mode="after")
    def check_payload(self) -> "ChangeEvent":
        """Require the payload that matches the event kind."""
        if self.kind == ChangeKind.REMOVED:
            if self.id is None:
                raise ValueError("removed event requires 'id'")
            return self
        if self.record is None:
            raise ValueError(f"{self.kind} event requires 'record'")
        if self.record.user_id != self.owner:
            raise ValueError("record owner does not match event owner")
        return self

    @property
    def bookmark_id(self) -> UUID:
        """Id of the bookmark this event is about."""
        if self.record is not None:
            return self.record.id
        return self.id  # type: ignore[return-value]

    @classmethod
    def added(cls, record: BookmarkResponse) -> "ChangeEvent":
        """Build an `added` event for a newly inserted record."""
        return cls(kind=ChangeKind.ADDED, owner=record.user_id, record=record)

    @classmethod
    def replaced(cls, record: BookmarkResponse) -> "ChangeEvent":
        """Build a `replaced` event for an updated record."""
        return cls(kind=ChangeKind.REPLACED, owner=record.user_id, record=record)

    @classmethod
    def removed(cls, owner: UUID, bookmark_id: UUID) -> "ChangeEvent":
        """Build a `removed` event for a deleted record."""
        return cls(kind=ChangeKind.REMOVED, owner=owner, id=bookmark_id)
