"""A single bookmark as displayed in the list."""
from dataclasses import dataclass

from client.errors import GatewayError
from client.gateway import BookmarkGateway
from schemas.bookmark import BookmarkResponse


@dataclass
class BookmarkCard:
    """Display state for one bookmark, including its delete affordance."""

    bookmark: BookmarkResponse
    is_deleting: bool = False
    error: str | None = None

    @property
    def added_label(self) -> str:
        created = self.bookmark.created_at
        return f"Added {created.strftime('%b')} {created.day}, {created.year}"

    async def delete(self, gateway: BookmarkGateway) -> bool:
        """Delete the bookmark; False with `error` set if the gateway refuses."""
        self.error = None
        self.is_deleting = True
        try:
            await gateway.delete_bookmark(self.bookmark.id)
        except GatewayError as e:
            self.error = e.message
            return False
        finally:
            self.is_deleting = False
        return True
