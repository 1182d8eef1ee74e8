"""Feed assembly: posts enriched with author and viewer interaction state."""

from __future__ import annotations

from .. import models, schemas
from ..store import EntityStore


def _enrich(
    store: EntityStore,
    viewer: models.User,
    posts: list[models.Post],
) -> list[schemas.FeedPost]:
    post_ids = [p.id for p in posts]
    authors = store.get_many(models.User, (p.user_id for p in posts))
    # Index-backed lookups restricted to this viewer and these posts
    liked = store.existing_values(models.Like, "post_id", post_ids, user_id=viewer.id)
    bookmarked = store.existing_values(models.Bookmark, "post_id", post_ids, user_id=viewer.id)

    items = []
    for post in posts:
        item = schemas.FeedPost.model_validate(post)
        author = authors.get(post.user_id)
        item.author = schemas.AuthorSummary.model_validate(author) if author else None
        item.liked = post.id in liked
        item.bookmarked = post.id in bookmarked
        items.append(item)
    return items


def get_feed(store: EntityStore, viewer: models.User) -> list[schemas.FeedPost]:
    """All posts, newest first, as seen by the viewer."""
    posts = store.all(models.Post, models.Post.id.desc())
    return _enrich(store, viewer, posts)


def list_bookmarked_posts(store: EntityStore, viewer: models.User) -> list[schemas.FeedPost]:
    """Posts the viewer bookmarked, most recently bookmarked first."""
    bookmarks = store.all(models.Bookmark, models.Bookmark.id.desc(), user_id=viewer.id)
    posts_by_id = store.get_many(models.Post, (b.post_id for b in bookmarks))
    posts = [posts_by_id[b.post_id] for b in bookmarks if b.post_id in posts_by_id]
    return _enrich(store, viewer, posts)
