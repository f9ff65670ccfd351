"""Pydantic schemas for tag endpoints."""
from pydantic import BaseModel


class TagListResponse(BaseModel):
    """Schema for the distinct tag list of the current user."""

    tags: list[str]
