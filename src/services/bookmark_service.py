"""
Service layer for bookmark CRUD operations.

Every query carries an explicit `Bookmark.user_id == user_id` predicate, so
ownership holds even when the database enforces no row-level security of its
own.
"""
import logging

from sqlalchemy import exists, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.base import utc_now
from models.bookmark import Bookmark
from models.tag import Tag, bookmark_tags
from schemas.bookmark import BookmarkCreate, BookmarkResponse, BookmarkUpdate
from schemas.change import ChangeEvent, DeletedRecord
from services.change_feed import record_change
from services.exceptions import OperationFailedError
from services.tag_service import get_or_create_tags, update_bookmark_tags
from services.utils import escape_ilike

logger = logging.getLogger(__name__)


async def create_bookmark(
    db: AsyncSession,
    user_id: int,
    data: BookmarkCreate,
) -> Bookmark:
    """
    Create a new bookmark for a user.

    The url has already been validated by the schema; the title falls back to
    the url and tags to an empty list.

    Args:
        db: Database session.
        user_id: User ID to create the bookmark for.
        data: Bookmark creation data.

    Returns:
        The created bookmark with tags loaded.

    Raises:
        OperationFailedError: If the store rejects the insert.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    try:
        tag_objects = await get_or_create_tags(db, user_id, data.tags)
        bookmark = Bookmark(
            user_id=user_id,
            url=data.url,
            title=data.title or data.url,
            description=data.description,
        )
        bookmark.tag_objects = tag_objects
        db.add(bookmark)
        await db.flush()
        await db.refresh(bookmark)
        # Ensure tag_objects is loaded for the response
        await db.refresh(bookmark, attribute_names=["tag_objects"])
    except SQLAlchemyError as e:
        raise OperationFailedError("create bookmark", e) from e

    logger.info("Created bookmark %s for user %s", bookmark.id, user_id)
    record_change(
        db, user_id,
        ChangeEvent(event_type="INSERT", new=BookmarkResponse.model_validate(bookmark)),
    )
    return bookmark


async def get_bookmark(
    db: AsyncSession,
    user_id: int,
    bookmark_id: int,
) -> Bookmark | None:
    """
    Get a bookmark by ID, scoped to user.

    Returns:
        The bookmark if found and owned by the user, None otherwise.

    Raises:
        OperationFailedError: If the query fails.
    """
    query = (
        select(Bookmark)
        .options(selectinload(Bookmark.tag_objects))
        .where(
            Bookmark.id == bookmark_id,
            Bookmark.user_id == user_id,
        )
    )
    try:
        result = await db.execute(query)
    except SQLAlchemyError as e:
        raise OperationFailedError("fetch bookmark", e) from e
    return result.scalar_one_or_none()


async def search_bookmarks(
    db: AsyncSession,
    user_id: int,
    query: str | None = None,
    tag: str | None = None,
) -> list[Bookmark]:
    """
    List a user's bookmarks, newest first, optionally filtered.

    Args:
        db: Database session.
        user_id: User ID to scope bookmarks.
        query:
            Case-insensitive substring match against title, url or
            description. LIKE wildcards in the query are matched literally.
        tag: Only bookmarks carrying exactly this tag.

    Returns:
        Matching bookmarks ordered by created_at descending.

    Raises:
        OperationFailedError: If the query fails.
    """
    base_query = (
        select(Bookmark)
        .options(selectinload(Bookmark.tag_objects))
        .where(Bookmark.user_id == user_id)
    )

    if query:
        search_pattern = f"%{escape_ilike(query)}%"
        base_query = base_query.where(
            or_(
                Bookmark.title.ilike(search_pattern, escape="\\"),
                Bookmark.url.ilike(search_pattern, escape="\\"),
                Bookmark.description.ilike(search_pattern, escape="\\"),
            ),
        )

    if tag:
        # EXISTS subquery: bookmark has this tag via junction table
        subq = (
            select(bookmark_tags.c.bookmark_id)
            .join(Tag, bookmark_tags.c.tag_id == Tag.id)
            .where(
                bookmark_tags.c.bookmark_id == Bookmark.id,
                Tag.name == tag,
                Tag.user_id == user_id,
            )
        )
        base_query = base_query.where(exists(subq))

    base_query = base_query.order_by(Bookmark.created_at.desc(), Bookmark.id.desc())

    try:
        result = await db.execute(base_query)
    except SQLAlchemyError as e:
        raise OperationFailedError("fetch bookmarks", e) from e
    return list(result.scalars().all())


async def update_bookmark(
    db: AsyncSession,
    user_id: int,
    bookmark_id: int,
    data: BookmarkUpdate,
) -> Bookmark | None:
    """
    Update a bookmark. Returns None if not found or wrong user.

    Only fields present in the request are applied. A null title resets the
    title to the (possibly updated) url. updated_at is always refreshed, even
    when only tags change.

    Raises:
        OperationFailedError: If the store rejects the update.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        return None

    update_data = data.model_dump(exclude_unset=True)
    new_tags = update_data.pop("tags", None)

    try:
        if "url" in update_data and update_data["url"] is not None:
            bookmark.url = update_data["url"]
        if "title" in update_data:
            bookmark.title = update_data["title"] or bookmark.url
        if "description" in update_data:
            bookmark.description = update_data["description"]
        if new_tags is not None:
            await update_bookmark_tags(db, bookmark, new_tags)

        bookmark.updated_at = utc_now()
        await db.flush()
        await db.refresh(bookmark)
        await db.refresh(bookmark, attribute_names=["tag_objects"])
    except SQLAlchemyError as e:
        raise OperationFailedError("update bookmark", e) from e

    record_change(
        db, user_id,
        ChangeEvent(event_type="UPDATE", new=BookmarkResponse.model_validate(bookmark)),
    )
    return bookmark


async def delete_bookmark(
    db: AsyncSession,
    user_id: int,
    bookmark_id: int,
) -> bool:
    """
    Permanently delete a bookmark. Returns True if deleted, False if not found.

    Junction rows are removed with the bookmark; the tags themselves stay.

    Raises:
        OperationFailedError: If the store rejects the delete.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        return False

    try:
        await db.delete(bookmark)
        await db.flush()
    except SQLAlchemyError as e:
        raise OperationFailedError("delete bookmark", e) from e

    logger.info("Deleted bookmark %s for user %s", bookmark_id, user_id)
    record_change(
        db, user_id,
        ChangeEvent(event_type="DELETE", old=DeletedRecord(id=bookmark_id)),
    )
    return True
