"""User provisioning and profile operations."""

from __future__ import annotations

import logging
import re

from .. import models
from ..errors import UserNotFound, ValidationError
from ..settings import DEFAULT_USER_IMAGE
from ..store import EntityStore
from .identity import normalize_email

logger = logging.getLogger(__name__)


def derive_username(email: str | None, fullname: str | None) -> str:
    """Username from the email local part, else the squashed lowercase name."""
    if email and "@" in email:
        local_part = email.split("@")[0]
        if local_part:
            return local_part
    if fullname:
        squashed = re.sub(r"\s+", "", fullname).lower()
        if squashed:
            return squashed
    return "user"


def _require(value: str | None, field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field} is required")
    return value


def create_user(
    store: EntityStore,
    *,
    email: str | None,
    external_id: str | None,
    username: str | None = None,
    fullname: str | None = None,
    image: str | None = None,
    bio: str | None = None,
) -> models.User:
    """
    Provision a user record.

    Idempotent: if a user with this email (or this external id) already
    exists it is returned unchanged. Counters always start at zero.
    """
    email = normalize_email(email)
    if not email:
        raise ValidationError("email is required")
    external_id = _require(external_id, "external_id")

    with store.transaction():
        existing = store.first(models.User, email=email)
        if existing is None:
            existing = store.first(models.User, external_id=external_id)
        if existing is not None:
            logger.debug(f"User {existing.id} already provisioned, skipping create")
            return existing

        fullname = (fullname or "").strip() or "User"
        user = store.insert(
            models.User(
                username=(username or "").strip() or derive_username(email, fullname),
                fullname=fullname,
                email=email,
                bio=bio,
                image=image or DEFAULT_USER_IMAGE,
                external_id=external_id,
                followers=0,
                following=0,
                posts=0,
            )
        )
        logger.info(f"Provisioned user {user.id} for external id {external_id}")
    return user


def sync_user(
    store: EntityStore,
    *,
    email: str | None,
    external_id: str | None,
    fullname: str | None = None,
    image: str | None = None,
) -> models.User:
    """
    Bring a user record in line with the identity provider's profile.

    Creates the user when missing. Counters and bio are never touched.
    """
    email = normalize_email(email)
    if not email:
        raise ValidationError("email is required")
    external_id = _require(external_id, "external_id")

    with store.transaction():
        user = store.first(models.User, external_id=external_id)
        if user is None:
            user = store.first(models.User, email=email)
        if user is not None:
            if fullname and fullname.strip():
                user.fullname = fullname.strip()
            if image:
                user.image = image
            user.email = email
            user.external_id = external_id
            store.session.flush()
            logger.info(f"Synced user {user.id} from identity provider")

    if user is not None:
        return user
    return create_user(
        store,
        email=email,
        external_id=external_id,
        fullname=fullname,
        image=image,
    )


def get_user_profile(store: EntityStore, user_id: int) -> models.User:
    user = store.get(models.User, user_id)
    if user is None:
        raise UserNotFound()
    return user


def get_user_by_email(store: EntityStore, email: str) -> models.User:
    user = store.first(models.User, email=normalize_email(email))
    if user is None:
        raise UserNotFound()
    return user


def get_user_by_external_id(store: EntityStore, external_id: str) -> models.User:
    user = store.first(models.User, external_id=external_id)
    if user is None:
        raise UserNotFound()
    return user


def update_profile(
    store: EntityStore,
    actor: models.User,
    *,
    fullname: str | None = None,
    bio: str | None = None,
) -> models.User:
    """Edit the caller's own profile. Fields left as None are unchanged."""
    with store.transaction():
        if fullname is not None:
            actor.fullname = _require(fullname, "fullname")
        if bio is not None:
            actor.bio = bio.strip() or None
        store.session.flush()
    return actor


def is_following(store: EntityStore, viewer: models.User, target_id: int) -> bool:
    return store.exists(models.Follow, follower_id=viewer.id, following_id=target_id)


def list_user_posts(store: EntityStore, user_id: int) -> list[models.Post]:
    """Posts by one user, newest first."""
    return store.all(models.Post, models.Post.id.desc(), user_id=user_id)


def provision_from_event(
    store: EntityStore, event_type: str, data: dict
) -> models.User | None:
    """
    Apply an identity provider user event.

    `user.created` provisions the user, `user.updated` syncs name, image and
    email. Other event types are ignored and return None.

    Raises:
        ValidationError: the event carries no email address.
    """
    if event_type not in ("user.created", "user.updated"):
        logger.debug(f"Ignoring identity event {event_type}")
        return None

    email_addresses = data.get("email_addresses") or []
    email = None
    if email_addresses and isinstance(email_addresses[0], dict):
        email = email_addresses[0].get("email_address")
    if not email:
        raise ValidationError("No email address in identity event")

    fullname = f"{data.get('first_name') or ''} {data.get('last_name') or ''}".strip()
    external_id = data.get("id")
    image = data.get("image_url")

    if event_type == "user.created":
        return create_user(
            store,
            email=email,
            external_id=external_id,
            username=derive_username(email, fullname),
            fullname=fullname,
            image=image,
        )
    return sync_user(
        store,
        email=email,
        external_id=external_id,
        fullname=fullname,
        image=image,
    )
