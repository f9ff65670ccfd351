"""HTTP client for the bookmarks API."""
import logging
from collections.abc import Callable
from typing import Any

import httpx

from client.errors import GatewayError, OperationFailedError, error_from_response
from schemas.bookmark import BookmarkResponse, DeleteResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

TokenGetter = Callable[[], str | None]


def get_headers(token: str | None) -> dict[str, str]:
    """Get common headers for API requests."""
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


class BookmarkGateway:
    """
    Typed access to the bookmark and tag endpoints.

    Every call is scoped to whoever `get_token` says is signed in. Failures
    raise a GatewayError subclass whose message can be shown to the user.
    """

    def __init__(self, http_client: httpx.AsyncClient, get_token: TokenGetter) -> None:
        self._client = http_client
        self._get_token = get_token

    async def list_bookmarks(
        self,
        query: str | None = None,
        tag: str | None = None,
    ) -> list[BookmarkResponse]:
        """Newest-first bookmarks matching the filter; empty when signed out."""
        params: dict[str, str] = {}
        if query:
            params["q"] = query
        if tag:
            params["tag"] = tag
        body = await self._request("GET", "/bookmarks/", "fetch bookmarks", params=params)
        return [BookmarkResponse.model_validate(item) for item in body]

    async def get_bookmark(self, bookmark_id: int) -> BookmarkResponse:
        """Fetch a single bookmark by id."""
        body = await self._request("GET", f"/bookmarks/{bookmark_id}", "fetch bookmark")
        return BookmarkResponse.model_validate(body)

    async def create_bookmark(self, payload: dict[str, Any]) -> BookmarkResponse:
        """Create a bookmark and return the stored record."""
        body = await self._request("POST", "/bookmarks/", "create bookmark", json=payload)
        return BookmarkResponse.model_validate(body)

    async def update_bookmark(
        self,
        bookmark_id: int,
        payload: dict[str, Any],
    ) -> BookmarkResponse:
        """Apply a partial update and return the stored record."""
        body = await self._request(
            "PATCH", f"/bookmarks/{bookmark_id}", "update bookmark", json=payload,
        )
        return BookmarkResponse.model_validate(body)

    async def delete_bookmark(self, bookmark_id: int) -> DeleteResponse:
        """Permanently delete a bookmark."""
        body = await self._request("DELETE", f"/bookmarks/{bookmark_id}", "delete bookmark")
        return DeleteResponse.model_validate(body)

    async def list_distinct_tags(self) -> list[str]:
        """Sorted tag names in use on the caller's bookmarks."""
        body = await self._request("GET", "/tags/", "fetch tags")
        return list(body.get("tags", []))

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        **kwargs: Any,
    ) -> Any:
        try:
            response = await self._client.request(
                method, path, headers=get_headers(self._get_token()), **kwargs,
            )
        except httpx.HTTPError as e:
            logger.warning("Request to %s %s failed: %s", method, path, e)
            raise OperationFailedError(f"Failed to {operation}: {e}") from e

        if response.is_error:
            error: GatewayError = error_from_response(response, operation)
            logger.debug("%s %s returned %s: %s", method, path, response.status_code, error)
            raise error
        return response.json()
