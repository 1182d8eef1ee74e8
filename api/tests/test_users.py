"""Test user provisioning, profiles and follow endpoints."""

import pytest

from conftest import auth_headers, make_token
from picfeed import models
from picfeed.errors import UserNotFound, ValidationError
from picfeed.services import users as user_service


class TestCreateUser:
    def test_defaults(self, store):
        user = user_service.create_user(store, email="Carol@Example.com", external_id="idp_carol")
        assert user.email == "carol@example.com"
        assert user.username == "carol"
        assert user.fullname == "User"
        assert user.image
        assert (user.followers, user.following, user.posts) == (0, 0, 0)

    def test_idempotent_on_email(self, store, user_factory):
        alice = user_factory("alice")
        again = user_service.create_user(
            store, email="alice@example.com", external_id="idp_other", fullname="Someone"
        )
        assert again.id == alice.id
        assert again.fullname == "Alice"
        assert store.session.query(models.User).count() == 1

    def test_idempotent_on_external_id(self, store, user_factory):
        alice = user_factory("alice")
        again = user_service.create_user(store, email="changed@example.com", external_id="idp_alice")
        assert again.id == alice.id

    def test_requires_email(self, store):
        with pytest.raises(ValidationError):
            user_service.create_user(store, email="  ", external_id="idp_x")

    def test_requires_external_id(self, store):
        with pytest.raises(ValidationError):
            user_service.create_user(store, email="x@example.com", external_id=None)


def test_derive_username():
    assert user_service.derive_username("dave@example.com", "Dave D") == "dave"
    assert user_service.derive_username(None, "Dave  Dee") == "davedee"
    assert user_service.derive_username(None, None) == "user"


class TestSyncUser:
    def test_updates_existing(self, store, user_factory):
        alice = user_factory("alice", bio="hi")
        synced = user_service.sync_user(
            store,
            email="alice.new@example.com",
            external_id="idp_alice",
            fullname="Alice Liddell",
            image="https://img.example.com/alice.png",
        )
        assert synced.id == alice.id
        assert synced.email == "alice.new@example.com"
        assert synced.fullname == "Alice Liddell"
        assert synced.image == "https://img.example.com/alice.png"
        assert synced.bio == "hi"

    def test_creates_missing(self, store):
        user = user_service.sync_user(store, email="eve@example.com", external_id="idp_eve")
        assert user.id is not None
        assert user.username == "eve"


def test_update_profile(store, user_factory):
    alice = user_factory("alice")
    user_service.update_profile(store, alice, bio="  photographer ")
    assert alice.bio == "photographer"
    assert alice.fullname == "Alice"
    with pytest.raises(ValidationError):
        user_service.update_profile(store, alice, fullname="   ")


def test_lookups(store, user_factory):
    alice = user_factory("alice")
    assert user_service.get_user_by_email(store, "ALICE@example.com").id == alice.id
    assert user_service.get_user_by_external_id(store, "idp_alice").id == alice.id
    with pytest.raises(UserNotFound):
        user_service.get_user_profile(store, alice.id + 100)


class TestUserEndpoints:
    def test_self_provision_uses_token_identity(self, client):
        headers = {"Authorization": f"Bearer {make_token('idp_frank', 'Frank@example.com')}"}
        response = client.post(
            "/users", headers=headers, json={"fullname": "Frank", "bio": "hello"}
        )
        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "frank@example.com"
        assert body["external_id"] == "idp_frank"
        assert body["username"] == "frank"

        again = client.post("/users", headers=headers, json={"fullname": "Other"})
        assert again.status_code == 201
        assert again.json()["id"] == body["id"]
        assert again.json()["fullname"] == "Frank"

    def test_self_provision_needs_email_claim(self, client):
        headers = {"Authorization": f"Bearer {make_token('idp_frank')}"}
        response = client.post("/users", headers=headers, json={})
        assert response.status_code == 400

    def test_get_and_patch_me(self, client, user_factory):
        alice = user_factory("alice")
        response = client.get("/users/me", headers=auth_headers(alice))
        assert response.status_code == 200
        assert response.json()["id"] == alice.id

        response = client.patch("/users/me", headers=auth_headers(alice), json={"bio": "new bio"})
        assert response.status_code == 200
        assert response.json()["bio"] == "new bio"

    def test_public_profile(self, client, user_factory):
        alice = user_factory("alice")
        response = client.get(f"/users/{alice.id}")
        assert response.status_code == 200
        body = response.json()
        assert body["username"] == "alice"
        assert "email" not in body

        assert client.get(f"/users/{alice.id + 100}").status_code == 404

    def test_user_posts_newest_first(self, client, user_factory, post_factory):
        alice = user_factory("alice")
        first = post_factory(alice, "first")
        second = post_factory(alice, "second")
        response = client.get(f"/users/{alice.id}/posts")
        assert [p["id"] for p in response.json()] == [second.id, first.id]

    def test_follow_toggle_and_is_following(self, client, user_factory):
        alice = user_factory("alice")
        bob = user_factory("bob")

        response = client.get(f"/users/{bob.id}/is-following", headers=auth_headers(alice))
        assert response.json() == {"following": False}

        response = client.post(f"/users/{bob.id}/follow", headers=auth_headers(alice))
        assert response.status_code == 200
        assert response.json() == {"following": True}

        response = client.get(f"/users/{bob.id}/is-following", headers=auth_headers(alice))
        assert response.json() == {"following": True}

        response = client.post(f"/users/{bob.id}/follow", headers=auth_headers(alice))
        assert response.json() == {"following": False}

    def test_is_following_degrades_for_unknown_caller(self, client, user_factory):
        bob = user_factory("bob")
        headers = {"Authorization": f"Bearer {make_token('idp_ghost', 'ghost@example.com')}"}
        response = client.get(f"/users/{bob.id}/is-following", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"following": False}

    def test_self_follow_rejected(self, client, user_factory):
        alice = user_factory("alice")
        response = client.post(f"/users/{alice.id}/follow", headers=auth_headers(alice))
        assert response.status_code == 400
