"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from core.config import get_settings


def validate_title(title: str) -> str:
    """
    Normalize and validate a bookmark title.

    Returns:
        The trimmed title.

    Raises:
        ValueError: If the title is blank or exceeds the maximum length.
    """
    settings = get_settings()
    trimmed = title.strip()
    if not trimmed:
        raise ValueError("Title is required")
    if len(trimmed) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(trimmed):,} characters).",
        )
    return trimmed


def validate_url_length(url: HttpUrl) -> HttpUrl:
    """Validate that a URL doesn't exceed maximum length."""
    settings = get_settings()
    if len(str(url)) > settings.max_url_length:
        raise ValueError(
            f"URL exceeds maximum length of {settings.max_url_length:,} characters.",
        )
    return url


def strip_url(value: object) -> object:
    """Trim surrounding whitespace from raw URL input before it is parsed."""
    if isinstance(value, str):
        return value.strip()
    return value


class BookmarkCreate(BaseModel):
    """Schema for creating a new bookmark."""

    title: str
    # HttpUrl normalizes root domains with trailing slash (example.com -> example.com/)
    # but preserves paths as-is (example.com/page stays example.com/page)
    url: HttpUrl

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        """Trim and validate title."""
        return validate_title(v)

    @field_validator("url", mode="before")
    @classmethod
    def trim_url(cls, v: object) -> object:
        """Trim URL input."""
        return strip_url(v)

    @field_validator("url")
    @classmethod
    def check_url_length(cls, v: HttpUrl) -> HttpUrl:
        """Validate URL length."""
        return validate_url_length(v)


class BookmarkUpdate(BaseModel):
    """Schema for updating an existing bookmark. Omitted fields are left unchanged."""

    title: str | None = None
    url: HttpUrl | None = None

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str | None:
        """Trim and validate title if provided."""
        if v is None:
            raise ValueError("Title cannot be null")
        return validate_title(v)

    @field_validator("url", mode="before")
    @classmethod
    def trim_url(cls, v: object) -> object:
        """Trim URL input."""
        if v is None:
            raise ValueError("URL cannot be null")
        return strip_url(v)

    @field_validator("url")
    @classmethod
    def check_url_length(cls, v: HttpUrl | None) -> HttpUrl | None:
        """Validate URL length."""
        if v is None:
            return None
        return validate_url_length(v)


class BookmarkResponse(BaseModel):
    """
    Schema for bookmark responses.

    Also the shape of `record` in change events, so clients parse REST and
    feed payloads with the same model.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    user_id: UUID
    title: str = Field(min_length=1)
    url: str = Field(min_length=1)
    created_at: datetime
