"""Comment endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from .. import models, schemas
from ..auth import get_current_user
from ..deps import get_store
from ..services import comments as comment_service
from ..store import EntityStore

router = APIRouter(prefix="/posts", tags=["Comments"])


@router.get("/{id}/comments", response_model=list[schemas.CommentWithAuthor])
def list_comments(
    id: int,  # Post ID
    store: EntityStore = Depends(get_store),
) -> list[schemas.CommentWithAuthor]:
    """
    List comments for a post, oldest first.

    Each comment carries the author's current fullname and image.
    """
    return comment_service.list_comments(store, id)


@router.post(
    "/{id}/comments",
    response_model=schemas.Comment,
    status_code=status.HTTP_201_CREATED,
)
def create_comment(
    id: int,  # Post ID
    payload: schemas.CommentCreate,
    store: EntityStore = Depends(get_store),
    current_user: models.User = Depends(get_current_user),
) -> models.Comment:
    """Comment on a post. Notifies the post owner unless they are the author."""
    return comment_service.add_comment(store, current_user, id, payload.content)
