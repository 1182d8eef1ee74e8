"""Post lifecycle: creation and cascading deletion."""

from __future__ import annotations

import logging

from .. import models
from ..blob_store import BlobStore
from ..errors import BlobNotFound, ConflictError, NotAuthorized, NotFound
from ..store import EntityStore

logger = logging.getLogger(__name__)


def generate_upload_url(blobs: BlobStore) -> str:
    """Upload URL for the client to send the image to directly."""
    return blobs.generate_upload_url()


def create_post(
    store: EntityStore,
    blobs: BlobStore,
    owner: models.User,
    storage_id: str,
    caption: str | None = None,
) -> models.Post:
    """
    Create a post from an uploaded image.

    Raises:
        BlobNotFound: storage_id does not resolve to a stored image.
        ConflictError: another post already uses this image.
    """
    image_url = blobs.get_url(storage_id)
    if not image_url:
        raise BlobNotFound()

    caption = caption.strip() if caption else None

    with store.transaction():
        if store.exists(models.Post, storage_id=storage_id):
            logger.warning(f"User {owner.id} tried to reuse image {storage_id}")
            raise ConflictError("Image already belongs to a post")

        post = store.insert(
            models.Post(
                user_id=owner.id,
                image_url=image_url,
                storage_id=storage_id,
                caption=caption or None,
                likes=0,
                comments=0,
            )
        )
        store.adjust(owner, "posts", 1)
        logger.info(f"User {owner.id} created post {post.id}")
    return post


def delete_post(
    store: EntityStore,
    blobs: BlobStore,
    requester: models.User,
    post_id: int,
) -> None:
    """
    Delete a post owned by the requester, with everything hanging off it.

    Likes, comments, bookmarks and notifications for the post are swept, the
    post row removed and the owner's post counter decremented, all in one
    transaction. The image is released last, before commit: if the blob
    store fails, every row change is rolled back and UpstreamFailure
    propagates with the post still intact.

    Raises:
        NotFound: no such post.
        NotAuthorized: requester does not own the post.
        UpstreamFailure: the blob store could not release the image.
    """
    with store.transaction():
        post = store.get(models.Post, post_id)
        if post is None:
            raise NotFound("Post not found")
        if post.user_id != requester.id:
            raise NotAuthorized("Not authorized to delete this post")

        owner_id = post.user_id
        storage_id = post.storage_id

        likes = store.delete_where(models.Like, post_id=post_id)
        comments = store.delete_where(models.Comment, post_id=post_id)
        bookmarks = store.delete_where(models.Bookmark, post_id=post_id)
        notifications = store.delete_where(models.Notification, post_id=post_id)

        store.delete(post)

        owner = store.get(models.User, owner_id)
        if owner is not None:
            store.adjust(owner, "posts", -1)

        blobs.delete(storage_id)

        logger.info(
            f"User {requester.id} deleted post {post_id} "
            f"({likes} likes, {comments} comments, {bookmarks} bookmarks, "
            f"{notifications} notifications)"
        )
