"""Post endpoints: upload URL, create, delete, feed, likes and bookmarks."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from .. import models, schemas
from ..auth import get_current_user, get_current_user_optional, get_principal
from ..blob_store import BlobStore
from ..deps import get_blob_store, get_store
from ..services import feed as feed_service
from ..services import posts as post_service
from ..services.identity import Principal
from ..services.toggles import toggle_bookmark, toggle_like
from ..store import EntityStore

router = APIRouter(prefix="/posts", tags=["Posts"])


@router.post("/upload-url", response_model=schemas.UploadUrlResponse)
def generate_upload_url(
    principal: Principal = Depends(get_principal),
    blobs: BlobStore = Depends(get_blob_store),
) -> schemas.UploadUrlResponse:
    """
    Get a one-time URL to upload an image to.

    The client POSTs the raw image bytes there and receives a storage_id
    to pass to post creation.
    """
    return schemas.UploadUrlResponse(upload_url=post_service.generate_upload_url(blobs))


@router.post("", response_model=schemas.Post, status_code=status.HTTP_201_CREATED)
def create_post(
    payload: schemas.PostCreate,
    store: EntityStore = Depends(get_store),
    blobs: BlobStore = Depends(get_blob_store),
    current_user: models.User = Depends(get_current_user),
) -> models.Post:
    """Create a post from an uploaded image."""
    return post_service.create_post(
        store, blobs, current_user, payload.storage_id, payload.caption
    )


@router.get("/feed", response_model=list[schemas.FeedPost])
def get_feed(
    store: EntityStore = Depends(get_store),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> list[schemas.FeedPost]:
    """
    All posts, newest first, with author and the caller's like/bookmark state.

    Unresolved callers get an empty feed.
    """
    if current_user is None:
        return []
    return feed_service.get_feed(store, current_user)


@router.delete("/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(
    id: int,
    store: EntityStore = Depends(get_store),
    blobs: BlobStore = Depends(get_blob_store),
    current_user: models.User = Depends(get_current_user),
) -> None:
    """Delete own post along with its likes, comments, bookmarks and notifications."""
    post_service.delete_post(store, blobs, current_user, id)


@router.post("/{id}/like", response_model=schemas.LikeToggleResponse)
def like_post(
    id: int,
    store: EntityStore = Depends(get_store),
    current_user: models.User = Depends(get_current_user),
) -> schemas.LikeToggleResponse:
    """Toggle like. Returns the new state."""
    return schemas.LikeToggleResponse(liked=toggle_like(store, current_user, id))


@router.post("/{id}/bookmark", response_model=schemas.BookmarkToggleResponse)
def bookmark_post(
    id: int,
    store: EntityStore = Depends(get_store),
    current_user: models.User = Depends(get_current_user),
) -> schemas.BookmarkToggleResponse:
    """Toggle bookmark. Returns the new state."""
    return schemas.BookmarkToggleResponse(bookmarked=toggle_bookmark(store, current_user, id))
