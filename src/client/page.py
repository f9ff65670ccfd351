"""
The bookmarks page: search box, tag chips, add form and bookmark cards.

The page owns one list reconciler and keeps it in step with three sources:
the user's own creates and deletes, gateway reloads when the filter changes,
and the live change feed. Auth changes arrive only through the session
store's subscription; signing out clears everything without a reload.
"""
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

from client.cards import BookmarkCard
from client.errors import GatewayError
from client.filters import normalize_filter
from client.forms import AddBookmarkForm
from client.gateway import BookmarkGateway
from client.live_feed import ChangeHandler, LiveFeed
from client.reconciler import BookmarkListReconciler
from client.session import AuthChange, AuthEvent, SessionStatus, SessionStore
from core.identity import Identity
from schemas.bookmark import BookmarkResponse
from schemas.change import ChangeEvent

logger = logging.getLogger(__name__)

NO_MATCHES_MESSAGE = "No bookmarks found matching your criteria."
NO_BOOKMARKS_MESSAGE = "No bookmarks yet. Add your first bookmark to get started!"

LiveFeedFactory = Callable[[ChangeHandler], LiveFeed]


class PageMode(StrEnum):
    """What the page is showing."""

    LOADING = "loading"
    LANDING = "landing"
    BOOKMARKS = "bookmarks"


@dataclass(frozen=True)
class TagChip:
    """A tag filter button; `tag` is None for "All"."""

    label: str
    tag: str | None
    selected: bool


@dataclass(frozen=True)
class PageView:
    """Snapshot of everything the page renders."""

    mode: PageMode
    identity: Identity | None = None
    auth_error: str | None = None
    query: str = ""
    tag_chips: list[TagChip] = field(default_factory=list)
    show_add_form: bool = False
    is_loading: bool = False
    error: str | None = None
    cards: list[BookmarkCard] = field(default_factory=list)
    empty_message: str | None = None
    footer: str | None = None


class BookmarkPage:
    """Page state for a signed-in user's bookmarks, or the landing view."""

    def __init__(
        self,
        session: SessionStore,
        gateway: BookmarkGateway,
        live_feed_factory: LiveFeedFactory | None = None,
    ) -> None:
        self.session = session
        self.gateway = gateway
        self.reconciler = BookmarkListReconciler()
        self.form = AddBookmarkForm()
        self.query = ""
        self.selected_tag: str | None = None
        self.tags: list[str] = []
        self.show_add_form = False
        self.is_loading = False
        self.error: str | None = None
        self._identity: Identity | None = None
        self._load_generation = 0
        self._cards: dict[int, BookmarkCard] = {}
        self._live_feed_factory = live_feed_factory
        self._live_feed: LiveFeed | None = None
        self._unsubscribe: Callable[[], None] | None = None

    async def open(self) -> None:
        """Start following the session; picks up an already-resolved one."""
        if self._unsubscribe is None:
            self._unsubscribe = self.session.subscribe(self._on_auth_change)
        if self.session.status != SessionStatus.UNKNOWN:
            await self._on_auth_change(
                AuthChange(AuthEvent.INITIAL_SESSION, self.session.identity),
            )

    async def close(self) -> None:
        """Drop the session subscription and close the live feed."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self._stop_live_feed()

    async def set_query(self, query: str) -> None:
        """Change the search text and reload the list."""
        self.query = query
        await self.reload()

    async def select_tag(self, tag: str | None) -> None:
        """Filter by a tag chip; None selects "All"."""
        self.selected_tag = tag or None
        await self.reload()

    def toggle_add_form(self) -> None:
        self.show_add_form = not self.show_add_form

    async def reload(self) -> None:
        """
        Fetch the list for the current filter, then refresh the tag chips.

        A result that arrives after a newer reload started, or after sign-out,
        is dropped.
        """
        if self._identity is None:
            return
        query, tag = normalize_filter(self.query, self.selected_tag)
        self._load_generation += 1
        generation = self._load_generation
        self.error = None
        self.is_loading = True
        try:
            records = await self.gateway.list_bookmarks(query, tag)
        except GatewayError as e:
            if generation == self._load_generation:
                self.error = e.message
        else:
            if generation == self._load_generation:
                self.reconciler.load(records, query, tag)
        finally:
            if generation == self._load_generation:
                self.is_loading = False
        if generation == self._load_generation:
            await self.load_tags()

    async def load_tags(self) -> None:
        """Refresh the tag chips; a failure keeps the previous chips."""
        identity = self._identity
        if identity is None:
            return
        try:
            tags = await self.gateway.list_distinct_tags()
        except GatewayError as e:
            logger.warning("Failed to load tags: %s", e)
            return
        if self._identity is identity:
            self.tags = tags

    async def submit_form(self) -> BookmarkResponse | None:
        """Submit the add form; the new bookmark is shown straight away."""
        identity = self._identity
        bookmark = await self.form.submit(self.gateway)
        if bookmark is None or self._identity is not identity:
            return bookmark
        self.show_add_form = False
        self.reconciler.apply_created(bookmark)
        await self.load_tags()
        return bookmark

    async def delete_bookmark(self, bookmark_id: int) -> bool:
        """Delete through the bookmark's card and drop it from the list."""
        record = next((r for r in self.reconciler.records if r.id == bookmark_id), None)
        if record is None:
            return False
        card = self._card_for(record)
        if not await card.delete(self.gateway):
            return False
        self.reconciler.apply_deleted(bookmark_id)
        self._cards.pop(bookmark_id, None)
        return True

    async def apply_change(self, change: ChangeEvent) -> None:
        """Live feed handler."""
        if self._identity is None:
            return
        self.reconciler.apply_change(change)
        if change.event_type == "DELETE":
            self._cards.pop(change.record_id, None)

    def view(self) -> PageView:
        """Describe what should be on screen right now."""
        if self.session.status == SessionStatus.UNKNOWN:
            return PageView(mode=PageMode.LOADING)
        if self._identity is None:
            return PageView(mode=PageMode.LANDING, auth_error=self.session.error)

        records = self.reconciler.records
        chips: list[TagChip] = []
        if self.tags:
            chips.append(TagChip("All", None, self.selected_tag is None))
            chips.extend(TagChip(tag, tag, self.selected_tag == tag) for tag in self.tags)

        empty_message = None
        footer = None
        if not self.is_loading and self.error is None and not records:
            filtered = bool(self.query or self.selected_tag)
            empty_message = NO_MATCHES_MESSAGE if filtered else NO_BOOKMARKS_MESSAGE
        if not self.is_loading and records:
            footer = f"Showing {len(records)} bookmark{'' if len(records) == 1 else 's'}"

        return PageView(
            mode=PageMode.BOOKMARKS,
            identity=self._identity,
            query=self.query,
            tag_chips=chips,
            show_add_form=self.show_add_form,
            is_loading=self.is_loading,
            error=self.error,
            cards=[self._card_for(r) for r in records],
            empty_message=empty_message,
            footer=footer,
        )

    async def _on_auth_change(self, change: AuthChange) -> None:
        if change.event == AuthEvent.TOKEN_REFRESHED:
            return
        if change.identity is None:
            self._identity = None
            # Any load still in flight belongs to the old session
            self._load_generation += 1
            self.is_loading = False
            self.reconciler.clear()
            self._cards.clear()
            self.tags = []
            self.show_add_form = False
            self.error = None
            await self._stop_live_feed()
            return

        identity = change.identity
        self._identity = identity
        await self.reload()
        if self._identity is identity:
            self._start_live_feed()

    def _card_for(self, record: BookmarkResponse) -> BookmarkCard:
        card = self._cards.get(record.id)
        if card is None:
            card = BookmarkCard(record)
            self._cards[record.id] = card
        else:
            card.bookmark = record
        return card

    def _start_live_feed(self) -> None:
        if self._live_feed_factory is None or self._identity is None:
            return
        if self._live_feed is None:
            self._live_feed = self._live_feed_factory(self.apply_change)
        self._live_feed.start()

    async def _stop_live_feed(self) -> None:
        if self._live_feed is not None:
            await self._live_feed.stop()
            self._live_feed = None
