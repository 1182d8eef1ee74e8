"""Bookmark listing endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from .. import models, schemas
from ..auth import get_current_user_optional
from ..deps import get_store
from ..services.feed import list_bookmarked_posts
from ..store import EntityStore

router = APIRouter(prefix="/bookmarks", tags=["Bookmarks"])


@router.get("", response_model=list[schemas.FeedPost])
def list_bookmarks(
    store: EntityStore = Depends(get_store),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> list[schemas.FeedPost]:
    """Posts the caller bookmarked, most recent first. Empty for unresolved callers."""
    if current_user is None:
        return []
    return list_bookmarked_posts(store, current_user)
