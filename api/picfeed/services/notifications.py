"""
Notification Service.

Creates notifications as a side effect of likes, comments and follows, and
lists them for the receiver.
"""

from __future__ import annotations

import logging

from .. import models, schemas
from ..store import EntityStore

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for managing activity notifications."""

    @staticmethod
    def create_notification(
        store: EntityStore,
        receiver_id: int,
        sender_id: int,
        notification_type: str,
        post_id: int | None = None,
        comment_id: int | None = None,
    ) -> models.Notification | None:
        """
        Append a notification inside the caller's transaction.

        Args:
            store: Entity store (the caller owns the transaction)
            receiver_id: User to notify (post owner or followed user)
            sender_id: User who performed the action
            notification_type: 'like', 'comment' or 'follow'
            post_id: Post the action targeted, if any
            comment_id: The new comment for comment notifications

        Returns:
            Created notification, or None for self-directed actions
        """
        if notification_type not in models.NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {notification_type}")

        # Don't notify users about their own actions
        if receiver_id == sender_id:
            logger.debug(f"Skipping self-notification for user {receiver_id}")
            return None

        notification = store.insert(
            models.Notification(
                receiver_id=receiver_id,
                sender_id=sender_id,
                type=notification_type,
                post_id=post_id,
                comment_id=comment_id,
            )
        )

        logger.info(
            f"Created {notification_type} notification {notification.id} for user {receiver_id}"
        )
        return notification

    @staticmethod
    def list_notifications(
        store: EntityStore,
        viewer: models.User,
        limit: int | None = None,
    ) -> list[schemas.NotificationWithContext]:
        """
        List the viewer's notifications, newest first.

        Each item carries the sender projection, the post thumbnail when the
        notification targets a post, and the comment text for comments.
        """
        query = store.session.query(models.Notification).filter(
            models.Notification.receiver_id == viewer.id
        ).order_by(models.Notification.id.desc())
        if limit is not None:
            query = query.limit(limit)
        notifications = query.all()

        senders = store.get_many(models.User, (n.sender_id for n in notifications))
        posts = store.get_many(models.Post, (n.post_id for n in notifications))
        comments = store.get_many(models.Comment, (n.comment_id for n in notifications))

        items = []
        for notification in notifications:
            sender = senders.get(notification.sender_id)
            post = posts.get(notification.post_id)
            comment = comments.get(notification.comment_id)
            item = schemas.NotificationWithContext.model_validate(notification)
            item.sender = schemas.AuthorSummary.model_validate(sender) if sender else None
            item.post = schemas.NotificationPost.model_validate(post) if post else None
            item.comment = comment.content if comment else None
            items.append(item)
        return items
