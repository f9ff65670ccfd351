"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from schemas.validators import (
    validate_and_normalize_tags,
    validate_description_length,
    validate_title_length,
    validate_url,
)


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value if value.strip() else None


class BookmarkCreate(BaseModel):
    """
    Schema for creating a new bookmark.

    `title` falls back to the url when omitted or blank; `tags` default to an
    empty list. Both defaults are applied here so the stored record always
    satisfies them regardless of which client created it.
    """

    url: str
    title: str | None = None
    description: str | None = None
    tags: list[str] = []

    @field_validator("url", mode="before")
    @classmethod
    def check_url(cls, v: Any) -> str:
        """Validate url is a well-formed absolute http(s) URL."""
        return validate_url(v)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)

    @field_validator("title")
    @classmethod
    def check_title_length(cls, v: str | None) -> str | None:
        """Validate title length."""
        return validate_title_length(_blank_to_none(v))

    @field_validator("description")
    @classmethod
    def check_description_length(cls, v: str | None) -> str | None:
        """Validate description length."""
        return validate_description_length(_blank_to_none(v))

    @model_validator(mode="after")
    def default_title_to_url(self) -> "BookmarkCreate":
        """Use the url as the title when none was supplied."""
        if self.title is None:
            self.title = self.url
        return self


class BookmarkUpdate(BaseModel):
    """
    Schema for updating an existing bookmark.

    Only fields present in the request body are applied (the service uses
    `model_dump(exclude_unset=True)`). An explicit null or blank title resets
    the title to the bookmark's url.
    """

    url: str | None = None
    title: str | None = None
    description: str | None = None
    tags: list[str] | None = None

    @field_validator("url", mode="before")
    @classmethod
    def check_url(cls, v: Any) -> str | None:
        """Validate url if provided."""
        if v is None:
            return None
        return validate_url(v)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        """Normalize and validate tags if provided."""
        if v is None:
            return None
        return validate_and_normalize_tags(v)

    @field_validator("title")
    @classmethod
    def check_title_length(cls, v: str | None) -> str | None:
        """Validate title length."""
        return validate_title_length(_blank_to_none(v))

    @field_validator("description")
    @classmethod
    def check_description_length(cls, v: str | None) -> str | None:
        """Validate description length."""
        return validate_description_length(_blank_to_none(v))


class BookmarkResponse(BaseModel):
    """
    Schema for bookmark responses.

    Note: Uses model_validator to extract tag names from the tag_objects
    relationship when eagerly loaded.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    title: str
    description: str | None
    tags: list[str]
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="before")
    @classmethod
    def extract_tag_names(cls, data: Any) -> Any:
        """
        Extract tag names from tag_objects relationship.

        Only accesses tag_objects if it's already loaded (not lazy) to avoid
        triggering database queries outside async context.
        """
        if hasattr(data, "__dict__") and hasattr(data, "tag_objects"):
            data_dict = {
                key: getattr(data, key)
                for key in ["id", "url", "title", "description", "created_at", "updated_at"]
            }
            loaded = data.__dict__.get("tag_objects")
            data_dict["tags"] = sorted(tag.name for tag in loaded) if loaded else []
            return data_dict
        return data


class DeleteResponse(BaseModel):
    """Schema for the delete acknowledgement."""

    success: bool
