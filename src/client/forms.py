"""The add-bookmark form."""
import logging
from dataclasses import dataclass
from typing import Any

from client.errors import GatewayError
from client.gateway import BookmarkGateway
from schemas.bookmark import BookmarkResponse

logger = logging.getLogger(__name__)


def parse_tags(tags_input: str) -> list[str]:
    """Split comma-separated input into trimmed, non-empty tags."""
    return [tag.strip() for tag in tags_input.split(",") if tag.strip()]


@dataclass
class AddBookmarkForm:
    """Field values and submission state of the add-bookmark form."""

    url: str = ""
    title: str = ""
    description: str = ""
    tags_input: str = ""
    is_submitting: bool = False
    error: str | None = None

    @property
    def can_submit(self) -> bool:
        return bool(self.url) and not self.is_submitting

    def to_payload(self) -> dict[str, Any]:
        """Build the create request body from the current field values."""
        payload: dict[str, Any] = {
            "url": self.url,
            "title": self.title or self.url,
            "description": self.description or None,
        }
        tags = parse_tags(self.tags_input)
        if tags:
            payload["tags"] = tags
        return payload

    def reset(self) -> None:
        """Clear every field."""
        self.url = ""
        self.title = ""
        self.description = ""
        self.tags_input = ""

    async def submit(self, gateway: BookmarkGateway) -> BookmarkResponse | None:
        """
        Create a bookmark from the form.

        Returns the stored record, or None with `error` set when the gateway
        rejects the request. The fields are kept on failure so the user can
        correct them.
        """
        self.error = None
        self.is_submitting = True
        try:
            bookmark = await gateway.create_bookmark(self.to_payload())
        except GatewayError as e:
            logger.warning("Failed to create bookmark: %s", e)
            self.error = e.message
            return None
        finally:
            self.is_submitting = False

        self.reset()
        return bookmark
