"""Keeps a displayed, filtered bookmark list consistent with live changes."""
import logging
from dataclasses import dataclass, field

from client.filters import matches, normalize_filter
from schemas.bookmark import BookmarkResponse
from schemas.change import ChangeEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterPair:
    """The (query, tag) filter the displayed list was loaded with."""

    query: str | None = None
    tag: str | None = None

    def matches(self, record: BookmarkResponse) -> bool:
        """Evaluate the filter predicate against a record."""
        return matches(record, self.query, self.tag)


@dataclass
class BookmarkListReconciler:
    """
    Newest-first list of bookmarks plus the filter it was loaded with.

    A record id appears at most once. Inserted records go to the position
    their created_at puts them at, so a record created locally and then
    echoed back by the live feed is replaced rather than duplicated.
    """

    records: list[BookmarkResponse] = field(default_factory=list)
    filters: FilterPair = field(default_factory=FilterPair)

    def load(
        self,
        records: list[BookmarkResponse],
        query: str | None = None,
        tag: str | None = None,
    ) -> None:
        """Replace the list with a fresh gateway result and its filter."""
        self.records = list(records)
        self.filters = FilterPair(*normalize_filter(query, tag))

    def clear(self) -> None:
        """Drop every record, keeping the filter."""
        self.records = []

    def apply_created(self, record: BookmarkResponse) -> None:
        """Insert a record the user just created, regardless of the filter."""
        self._insert(record)

    def apply_deleted(self, bookmark_id: int) -> None:
        """Remove a record the user just deleted."""
        self._remove(bookmark_id)

    def apply_change(self, change: ChangeEvent) -> None:
        """Apply a committed change from the live feed."""
        if change.event_type == "DELETE":
            self._remove(change.record_id)
            return

        record = change.new
        if record is None:
            logger.warning("Ignoring %s event without a record", change.event_type)
            return

        if change.event_type == "INSERT":
            if self.filters.matches(record):
                self._insert(record)
        elif self.filters.matches(record):
            self._replace(record)
        else:
            # Edited out of the current filter
            self._remove(record.id)

    def _index_of(self, bookmark_id: int) -> int | None:
        for index, existing in enumerate(self.records):
            if existing.id == bookmark_id:
                return index
        return None

    def _insert(self, record: BookmarkResponse) -> None:
        self._remove(record.id)
        position = 0
        while (
            position < len(self.records)
            and self.records[position].created_at > record.created_at
        ):
            position += 1
        self.records.insert(position, record)

    def _replace(self, record: BookmarkResponse) -> None:
        index = self._index_of(record.id)
        if index is not None:
            self.records[index] = record

    def _remove(self, bookmark_id: int) -> None:
        self.records = [r for r in self.records if r.id != bookmark_id]
