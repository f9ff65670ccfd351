"""Consumer for the API's live change stream."""
import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

import httpx
from pydantic import ValidationError

from client.gateway import TokenGetter, get_headers
from schemas.change import ChangeEvent

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]


class LiveFeed:
    """
    Delivers the signed-in user's committed bookmark changes to a handler.

    Events arrive as newline-delimited JSON; blank lines are heartbeats. The
    stream runs in a background task between `start()` and `stop()`.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        get_token: TokenGetter,
        handler: ChangeHandler,
        path: str = "/bookmarks/changes",
    ) -> None:
        self._client = http_client
        self._get_token = get_token
        self._handler = handler
        self._path = path
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Open the stream in the background; no-op if already open."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Close the stream. Safe to call when it is not running."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def run(self) -> None:
        """Consume the stream until it ends, dispatching each event."""
        try:
            async with self._client.stream(
                "GET",
                self._path,
                headers=get_headers(self._get_token()),
                timeout=None,
            ) as response:
                if response.is_error:
                    logger.warning("Live feed refused with status %s", response.status_code)
                    return
                async for line in response.aiter_lines():
                    await self._dispatch(line)
        except httpx.HTTPError as e:
            logger.warning("Live feed disconnected: %s", e)

    async def _dispatch(self, line: str) -> None:
        if not line.strip():
            return
        try:
            change = ChangeEvent.model_validate_json(line)
        except ValidationError:
            logger.warning("Skipping malformed change event: %r", line)
            return
        await self._handler(change)
