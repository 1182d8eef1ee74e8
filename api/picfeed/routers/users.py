"""User endpoints: provisioning, profiles and follows."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from .. import models, schemas
from ..auth import get_current_user, get_current_user_optional, get_principal
from ..deps import get_store
from ..errors import ValidationError
from ..services import users as user_service
from ..services.identity import Principal
from ..services.toggles import toggle_follow
from ..store import EntityStore

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=schemas.CurrentUser, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: schemas.UserCreate,
    principal: Principal = Depends(get_principal),
    store: EntityStore = Depends(get_store),
) -> models.User:
    """
    Provision the caller's user record from the client side.

    Covers the window before the identity webhook has landed. Email and
    external id are taken from the verified token, never from the body.
    Returns the existing record if the caller is already provisioned.
    """
    if not principal.email:
        raise ValidationError("Identity token carries no email")

    return user_service.create_user(
        store,
        email=principal.email,
        external_id=principal.subject,
        username=payload.username,
        fullname=payload.fullname,
        image=payload.image,
        bio=payload.bio,
    )


@router.get("/me", response_model=schemas.CurrentUser)
def get_me(current_user: models.User = Depends(get_current_user)) -> models.User:
    """Current authenticated user."""
    return current_user


@router.patch("/me", response_model=schemas.CurrentUser)
def update_me(
    payload: schemas.UserUpdate,
    store: EntityStore = Depends(get_store),
    current_user: models.User = Depends(get_current_user),
) -> models.User:
    """Update the caller's fullname and/or bio."""
    return user_service.update_profile(
        store, current_user, fullname=payload.fullname, bio=payload.bio
    )


@router.get("/{id}", response_model=schemas.UserProfile)
def get_user(id: int, store: EntityStore = Depends(get_store)) -> models.User:
    return user_service.get_user_profile(store, id)


@router.get("/{id}/posts", response_model=list[schemas.Post])
def list_user_posts(id: int, store: EntityStore = Depends(get_store)) -> list[models.Post]:
    """Posts by a user, newest first."""
    return user_service.list_user_posts(store, id)


@router.get("/{id}/is-following", response_model=schemas.IsFollowingResponse)
def is_following(
    id: int,
    store: EntityStore = Depends(get_store),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.IsFollowingResponse:
    """Whether the caller follows this user. False for unresolved callers."""
    if current_user is None:
        return schemas.IsFollowingResponse(following=False)
    return schemas.IsFollowingResponse(
        following=user_service.is_following(store, current_user, id)
    )


@router.post("/{id}/follow", response_model=schemas.FollowToggleResponse)
def follow_user(
    id: int,
    store: EntityStore = Depends(get_store),
    current_user: models.User = Depends(get_current_user),
) -> schemas.FollowToggleResponse:
    """Toggle following this user. Returns the new state."""
    return schemas.FollowToggleResponse(following=toggle_follow(store, current_user, id))
