"""Service layer for tag operations."""
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from models.tag import Tag, bookmark_tags
from schemas.validators import validate_and_normalize_tags
from services.exceptions import OperationFailedError


async def get_or_create_tags(
    db: AsyncSession,
    user_id: int,
    tag_names: list[str],
) -> list[Tag]:
    """
    Get existing tags or create new ones.

    Args:
        db: Database session.
        user_id: User ID to scope tags.
        tag_names: List of tag names to get or create.

    Returns:
        List of Tag objects (existing or newly created), in input order.
    """
    if not tag_names:
        return []

    normalized = validate_and_normalize_tags(tag_names)
    if not normalized:
        return []

    # Fetch existing tags
    result = await db.execute(
        select(Tag).where(
            Tag.user_id == user_id,
            Tag.name.in_(normalized),
        ),
    )
    existing_tags = {tag.name: tag for tag in result.scalars()}

    # Create missing tags
    tags = []
    for name in normalized:
        if name in existing_tags:
            tags.append(existing_tags[name])
        else:
            new_tag = Tag(user_id=user_id, name=name)
            db.add(new_tag)
            tags.append(new_tag)

    await db.flush()
    return tags


async def update_bookmark_tags(
    db: AsyncSession,
    bookmark: Bookmark,
    tag_names: list[str],
) -> None:
    """
    Update a bookmark's tags using the junction table.

    Clears existing tags and sets new ones.
    """
    if tag_names:
        tag_objects = await get_or_create_tags(db, bookmark.user_id, tag_names)
    else:
        tag_objects = []

    bookmark.tag_objects = tag_objects
    await db.flush()


async def get_distinct_tags(
    db: AsyncSession,
    user_id: int,
) -> list[str]:
    """
    Get the sorted set of tags attached to at least one of the user's bookmarks.

    Tags left behind after their last bookmark was deleted or retagged are not
    reported.

    Raises:
        OperationFailedError: If the query fails.
    """
    try:
        result = await db.execute(
            select(Tag.name)
            .join(bookmark_tags, Tag.id == bookmark_tags.c.tag_id)
            .join(Bookmark, bookmark_tags.c.bookmark_id == Bookmark.id)
            .where(
                Tag.user_id == user_id,
                Bookmark.user_id == user_id,
            )
            .distinct(),
        )
    except SQLAlchemyError as e:
        raise OperationFailedError("fetch tags", e) from e
    # Sort in Python so ordering does not depend on the database collation
    return sorted(set(result.scalars()))
