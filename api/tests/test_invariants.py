"""Counter and reference invariants across mixed operation sequences."""

import random

import pytest

from picfeed import models
from picfeed.services import posts as post_service
from picfeed.services.comments import add_comment
from picfeed.services.integrity import (
    find_counter_drift,
    find_dangling_references,
    repair_counter_drift,
)
from picfeed.services.toggles import toggle_bookmark, toggle_follow, toggle_like


def _count(store, model, **index) -> int:
    return store.session.query(model).filter_by(**index).count()


def test_like_and_delete_scenario(store, blobs, user_factory, post_factory):
    a = user_factory("alice")
    b = user_factory("bob")
    assert a.posts == 0

    post = post_factory(a)
    post_id = post.id
    assert a.posts == 1
    assert post.likes == 0

    assert toggle_like(store, b, post_id) is True
    assert post.likes == 1
    assert _count(store, models.Notification, receiver_id=a.id, sender_id=b.id, type="like") == 1

    assert toggle_like(store, b, post_id) is False
    assert post.likes == 0
    assert _count(store, models.Notification) == 1

    post_service.delete_post(store, blobs, a, post_id)
    assert a.posts == 0
    assert find_dangling_references(store.session) == []
    assert _count(store, models.Notification) == 0
    assert find_counter_drift(store.session) == []


def test_follow_scenario(store, user_factory):
    a = user_factory("alice")
    b = user_factory("bob")

    assert toggle_follow(store, a, b.id) is True
    assert (b.followers, a.following) == (1, 1)
    assert _count(store, models.Notification, receiver_id=b.id, type="follow") == 1

    assert toggle_follow(store, a, b.id) is False
    assert (b.followers, a.following) == (0, 0)
    assert _count(store, models.Notification) == 1
    assert find_counter_drift(store.session) == []


def test_self_interactions_never_notify(store, user_factory, post_factory):
    a = user_factory("alice")
    post = post_factory(a)
    toggle_like(store, a, post.id)
    add_comment(store, a, post.id, "me again")
    toggle_bookmark(store, a, post.id)
    assert _count(store, models.Notification) == 0


def test_delete_removes_exactly_derived_rows(store, blobs, user_factory, post_factory):
    owner = user_factory("owner")
    fans = [user_factory(f"fan{i}") for i in range(3)]
    doomed = post_factory(owner)
    kept = post_factory(owner)

    for fan in fans:
        toggle_like(store, fan, doomed.id)
        toggle_like(store, fan, kept.id)
    for fan in fans[:2]:
        add_comment(store, fan, doomed.id, "bye")
        toggle_bookmark(store, fan, doomed.id)
    toggle_follow(store, fans[0], owner.id)

    before = {m: _count(store, m) for m in (models.Like, models.Comment, models.Bookmark)}
    notifications_before = _count(store, models.Notification)
    doomed_notifications = _count(store, models.Notification, post_id=doomed.id)
    storage_id = doomed.storage_id

    post_service.delete_post(store, blobs, owner, doomed.id)

    assert _count(store, models.Like) == before[models.Like] - 3
    assert _count(store, models.Comment) == before[models.Comment] - 2
    assert _count(store, models.Bookmark) == before[models.Bookmark] - 2
    assert _count(store, models.Notification) == notifications_before - doomed_notifications
    assert _count(store, models.Notification, type="follow") == 1
    assert blobs.get_url(storage_id) is None
    assert find_dangling_references(store.session) == []
    assert find_counter_drift(store.session) == []


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_counters_hold_after_random_operations(store, blobs, user_factory, post_factory, seed):
    rng = random.Random(seed)
    users = [user_factory(f"u{i}") for i in range(4)]
    posts = [post_factory(rng.choice(users)) for _ in range(4)]

    for _ in range(60):
        actor = rng.choice(users)
        action = rng.choice(["like", "bookmark", "follow", "comment", "create", "delete"])
        if action == "create":
            posts.append(post_factory(actor))
        elif action == "follow":
            target = rng.choice(users)
            if target.id != actor.id:
                toggle_follow(store, actor, target.id)
        elif posts:
            post = rng.choice(posts)
            if action == "like":
                toggle_like(store, actor, post.id)
            elif action == "bookmark":
                toggle_bookmark(store, actor, post.id)
            elif action == "comment":
                add_comment(store, actor, post.id, "hi")
            elif post.user_id == actor.id:
                post_service.delete_post(store, blobs, actor, post.id)
                posts.remove(post)

    assert find_counter_drift(store.session) == []
    assert find_dangling_references(store.session) == []


def test_repair_counter_drift(store, user_factory, post_factory):
    a = user_factory("alice")
    b = user_factory("bob")
    post = post_factory(a)
    toggle_like(store, b, post.id)

    post.likes = 5
    a.posts = 0
    store.session.commit()

    drifts = find_counter_drift(store.session)
    assert {(d.table, d.field, d.stored, d.actual) for d in drifts} == {
        ("posts", "likes", 5, 1),
        ("users", "posts", 0, 1),
    }

    assert repair_counter_drift(store.session, drifts) == 2
    assert find_counter_drift(store.session) == []
