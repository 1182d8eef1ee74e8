"""Comment threads on posts."""

from __future__ import annotations

import logging

from .. import models, schemas
from ..errors import NotFound, ValidationError
from ..store import EntityStore
from .notifications import NotificationService

logger = logging.getLogger(__name__)


def add_comment(
    store: EntityStore,
    author: models.User,
    post_id: int,
    content: str,
) -> models.Comment:
    """
    Append a comment and bump the post's comment counter.

    The post owner is notified unless they wrote the comment.

    Raises:
        ValidationError: blank comment.
        NotFound: no such post.
    """
    content = (content or "").strip()
    if not content:
        raise ValidationError("Comment cannot be empty")

    with store.transaction():
        post = store.get(models.Post, post_id)
        if post is None:
            raise NotFound("Post not found")
        author_id = author.id
        owner_id = post.user_id

        comment = store.insert(
            models.Comment(user_id=author_id, post_id=post_id, content=content)
        )
        store.adjust(post, "comments", 1)

        NotificationService.create_notification(
            store,
            receiver_id=owner_id,
            sender_id=author_id,
            notification_type="comment",
            post_id=post_id,
            comment_id=comment.id,
        )
        logger.info(f"User {author_id} commented {comment.id} on post {post_id}")
    return comment


def list_comments(store: EntityStore, post_id: int) -> list[schemas.CommentWithAuthor]:
    """
    Comments on a post, oldest first.

    The author projection is looked up now, so it reflects the author's
    current profile rather than the one they had when commenting.
    """
    comments = store.all(models.Comment, models.Comment.id.asc(), post_id=post_id)
    authors = store.get_many(models.User, (c.user_id for c in comments))

    items = []
    for comment in comments:
        item = schemas.CommentWithAuthor.model_validate(comment)
        author = authors.get(comment.user_id)
        item.user = schemas.CommentAuthor.model_validate(author) if author else None
        items.append(item)
    return items
