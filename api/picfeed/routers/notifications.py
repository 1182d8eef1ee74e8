"""Notification endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from .. import models, schemas
from ..auth import get_current_user_optional
from ..deps import get_store
from ..services.notifications import NotificationService
from ..store import EntityStore

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=list[schemas.NotificationWithContext])
def list_notifications(
    limit: int | None = Query(None, ge=1, le=500),
    store: EntityStore = Depends(get_store),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> list[schemas.NotificationWithContext]:
    """
    List notifications for the current user, newest first.

    Each item includes the sender, the post thumbnail and the comment text
    where they apply. Unresolved callers get an empty list.
    """
    if current_user is None:
        return []
    return NotificationService.list_notifications(store, current_user, limit=limit)
