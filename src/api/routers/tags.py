"""Tag listing endpoint."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_optional_user
from models.user import User
from schemas.tag import TagListResponse
from services.tag_service import get_distinct_tags

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("/", response_model=TagListResponse)
async def list_tags(
    current_user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_session),
) -> TagListResponse:
    """
    Get the sorted, de-duplicated tags used across the current user's bookmarks.

    Anonymous callers get an empty list.
    """
    if current_user is None:
        return TagListResponse(tags=[])
    return TagListResponse(tags=await get_distinct_tags(db, current_user.id))
