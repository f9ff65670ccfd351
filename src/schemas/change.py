"""Schemas for live change-feed events."""
from typing import Literal

from pydantic import BaseModel

from schemas.bookmark import BookmarkResponse

ChangeType = Literal["INSERT", "UPDATE", "DELETE"]


class DeletedRecord(BaseModel):
    """Identifying remainder of a deleted bookmark."""

    id: int


class ChangeEvent(BaseModel):
    """
    A single committed change to one of the owner's bookmarks.

    `new` is set for INSERT and UPDATE, `old` for DELETE.
    """

    event_type: ChangeType
    new: BookmarkResponse | None = None
    old: DeletedRecord | None = None

    @property
    def record_id(self) -> int:
        """Id of the bookmark the event refers to."""
        if self.new is not None:
            return self.new.id
        if self.old is not None:
            return self.old.id
        raise ValueError("Change event carries no record")
