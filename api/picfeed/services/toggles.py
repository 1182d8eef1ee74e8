"""Interaction toggles: likes, bookmarks and follows.

A toggle flips whether a relation row exists between the actor and a target
and returns the new state (True = now active). Callers cannot ask for a
target state. Each toggle is a single transaction, and the relation tables
carry unique constraints, so two callers racing to create the same row
cannot both succeed: the loser's transaction rolls back with ConflictError.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .. import models
from ..errors import NotFound, UserNotFound, ValidationError
from ..store import EntityStore
from .notifications import NotificationService

logger = logging.getLogger(__name__)


def toggle_relation(
    store: EntityStore,
    model: type,
    key: dict[str, Any],
    on_activate: Callable[[], None] | None = None,
    on_deactivate: Callable[[], None] | None = None,
) -> bool:
    """
    Flip the existence of the `model` row identified by `key`.

    Must run inside the caller's transaction. The hooks apply the counter
    and notification side effects of each transition.
    """
    existing = store.first(model, **key)
    if existing is not None:
        store.delete(existing)
        if on_deactivate:
            on_deactivate()
        return False

    store.insert(model(**key))
    if on_activate:
        on_activate()
    return True


def _get_post(store: EntityStore, post_id: int) -> models.Post:
    post = store.get(models.Post, post_id)
    if post is None:
        raise NotFound("Post not found")
    return post


def toggle_like(store: EntityStore, actor: models.User, post_id: int) -> bool:
    """Like or unlike a post. Liking notifies the post owner."""
    with store.transaction():
        post = _get_post(store, post_id)
        actor_id = actor.id
        owner_id = post.user_id

        def activate() -> None:
            store.adjust(post, "likes", 1)
            NotificationService.create_notification(
                store,
                receiver_id=owner_id,
                sender_id=actor_id,
                notification_type="like",
                post_id=post_id,
            )

        liked = toggle_relation(
            store,
            models.Like,
            {"user_id": actor_id, "post_id": post_id},
            on_activate=activate,
            on_deactivate=lambda: store.adjust(post, "likes", -1),
        )
        logger.info(f"User {actor_id} {'liked' if liked else 'unliked'} post {post_id}")
    return liked


def toggle_bookmark(store: EntityStore, actor: models.User, post_id: int) -> bool:
    """Bookmark or un-bookmark a post. No counters, no notification."""
    with store.transaction():
        _get_post(store, post_id)
        actor_id = actor.id
        bookmarked = toggle_relation(
            store,
            models.Bookmark,
            {"user_id": actor_id, "post_id": post_id},
        )
        logger.info(
            f"User {actor_id} {'bookmarked' if bookmarked else 'removed bookmark on'} post {post_id}"
        )
    return bookmarked


def toggle_follow(store: EntityStore, actor: models.User, following_id: int) -> bool:
    """
    Follow or unfollow another user.

    Maintains the actor's `following` and the target's `followers` counters.
    Following notifies the target.

    Raises:
        ValidationError: actor tried to follow themselves.
        UserNotFound: no such target user.
    """
    with store.transaction():
        actor_id = actor.id
        if following_id == actor_id:
            raise ValidationError("You cannot follow yourself")

        target = store.get(models.User, following_id)
        if target is None:
            raise UserNotFound()

        def activate() -> None:
            store.adjust(actor, "following", 1)
            store.adjust(target, "followers", 1)
            NotificationService.create_notification(
                store,
                receiver_id=following_id,
                sender_id=actor_id,
                notification_type="follow",
            )

        def deactivate() -> None:
            store.adjust(actor, "following", -1)
            store.adjust(target, "followers", -1)

        following = toggle_relation(
            store,
            models.Follow,
            {"follower_id": actor_id, "following_id": following_id},
            on_activate=activate,
            on_deactivate=deactivate,
        )
        logger.info(
            f"User {actor_id} {'followed' if following else 'unfollowed'} user {following_id}"
        )
    return following
