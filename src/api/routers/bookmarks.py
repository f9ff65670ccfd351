"""Bookmark CRUD endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_async_session,
    get_change_feed,
    get_current_user,
    get_optional_user,
)
from models.user import User
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkResponse,
    BookmarkUpdate,
    DeleteResponse,
)
from services import bookmark_service
from services.change_feed import ChangeFeed, stream_changes

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.get("/", response_model=list[BookmarkResponse])
async def list_bookmarks(
    q: str | None = Query(default=None, description="Search query (matches title, url, description)"),  # noqa: E501
    tag: str | None = Query(default=None, description="Only bookmarks with exactly this tag"),
    current_user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_session),
) -> list[BookmarkResponse]:
    """
    List the current user's bookmarks, newest first.

    - **q**: case-insensitive substring search across title, url and description
    - **tag**: restrict to bookmarks carrying this exact tag

    Anonymous callers get an empty list.
    """
    if current_user is None:
        return []
    bookmarks = await bookmark_service.search_bookmarks(
        db=db,
        user_id=current_user.id,
        query=q,
        tag=tag,
    )
    return [BookmarkResponse.model_validate(b) for b in bookmarks]


@router.post("/", response_model=BookmarkResponse, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Create a new bookmark."""
    bookmark = await bookmark_service.create_bookmark(db, current_user.id, data)
    return BookmarkResponse.model_validate(bookmark)


@router.get("/changes")
async def stream_bookmark_changes(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    feed: ChangeFeed = Depends(get_change_feed),
) -> StreamingResponse:
    """
    Stream committed changes to the current user's bookmarks.

    Each line is a JSON change event (`event_type` INSERT, UPDATE or DELETE);
    blank lines are heartbeats.
    """
    user_id = current_user.id
    # Release the connection before the long-lived stream starts
    await db.commit()
    return StreamingResponse(
        stream_changes(feed, user_id, request.is_disconnected),
        media_type="application/x-ndjson",
        headers={"Cache-Control": "no-cache"},
    )


@router.get("/{bookmark_id}", response_model=BookmarkResponse)
async def get_bookmark(
    bookmark_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Get a single bookmark by ID."""
    bookmark = await bookmark_service.get_bookmark(db, current_user.id, bookmark_id)
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return BookmarkResponse.model_validate(bookmark)


@router.patch("/{bookmark_id}", response_model=BookmarkResponse)
async def update_bookmark(
    bookmark_id: int,
    data: BookmarkUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Update a bookmark. Only the supplied fields change."""
    bookmark = await bookmark_service.update_bookmark(
        db, current_user.id, bookmark_id, data,
    )
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return BookmarkResponse.model_validate(bookmark)


@router.delete("/{bookmark_id}", response_model=DeleteResponse)
async def delete_bookmark(
    bookmark_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> DeleteResponse:
    """Permanently delete a bookmark."""
    deleted = await bookmark_service.delete_bookmark(db, current_user.id, bookmark_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return DeleteResponse(success=True)
