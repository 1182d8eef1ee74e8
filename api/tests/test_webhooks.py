"""Test the identity provider webhook."""

import json
import os
from datetime import datetime, timezone

from svix.webhooks import Webhook

from picfeed import models

SECRET = os.environ["IDENTITY_WEBHOOK_SECRET"]


def _user_event(event_type: str, **data) -> dict:
    payload = {
        "id": "idp_gina",
        "email_addresses": [{"email_address": "Gina@example.com"}],
        "first_name": "Gina",
        "last_name": "Lee",
        "image_url": "https://img.example.com/gina.png",
    }
    payload.update(data)
    return {"type": event_type, "data": payload}


def _signed_headers(body: str, secret: str = SECRET) -> dict[str, str]:
    msg_id = "msg_test"
    timestamp = datetime.now(timezone.utc)
    signature = Webhook(secret).sign(msg_id, timestamp, body)
    return {
        "svix-id": msg_id,
        "svix-timestamp": str(int(timestamp.timestamp())),
        "svix-signature": signature,
        "content-type": "application/json",
    }


def _post(client, event: dict, headers: dict | None = None):
    body = json.dumps(event)
    return client.post(
        "/webhooks/identity",
        content=body,
        headers=headers if headers is not None else _signed_headers(body),
    )


def test_user_created(client, db):
    response = _post(client, _user_event("user.created"))
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}

    user = db.query(models.User).one()
    assert user.email == "gina@example.com"
    assert user.external_id == "idp_gina"
    assert user.username == "gina"
    assert user.fullname == "Gina Lee"
    assert user.image == "https://img.example.com/gina.png"


def test_user_created_twice_is_idempotent(client, db):
    _post(client, _user_event("user.created"))
    response = _post(client, _user_event("user.created", first_name="Other"))
    assert response.status_code == 200
    assert db.query(models.User).count() == 1
    assert db.query(models.User).one().fullname == "Gina Lee"


def test_user_updated_syncs(client, db, user_factory):
    user_factory("gina", external_id="idp_gina", bio="kept")
    response = _post(client, _user_event("user.updated", last_name="Park"))
    assert response.status_code == 200
    user = db.query(models.User).one()
    assert user.fullname == "Gina Park"
    assert user.bio == "kept"


def test_other_events_ignored(client, db):
    response = _post(client, {"type": "session.created", "data": {"id": "sess_1"}})
    assert response.status_code == 200
    assert db.query(models.User).count() == 0


def test_missing_email(client, db):
    response = _post(client, _user_event("user.created", email_addresses=[]))
    assert response.status_code == 400
    assert db.query(models.User).count() == 0


def test_missing_signature_headers(client):
    response = _post(client, _user_event("user.created"), headers={})
    assert response.status_code == 400


def test_bad_signature(client, db):
    event = _user_event("user.created")
    body = json.dumps(event)
    headers = _signed_headers(body, secret="whsec_" + "QUJDREVGR0hJSktMTU5PUFFSU1RVVldYWVo=")
    response = client.post("/webhooks/identity", content=body, headers=headers)
    assert response.status_code == 400
    assert db.query(models.User).count() == 0


def test_unconfigured_secret(client, monkeypatch):
    monkeypatch.setattr("picfeed.settings.IDENTITY_WEBHOOK_SECRET", None)
    response = _post(client, _user_event("user.created"))
    assert response.status_code == 500


def test_provisioning_failure_is_500(client, db, monkeypatch):
    def fail(store, event_type, data):
        raise RuntimeError("database went away")

    monkeypatch.setattr("picfeed.routers.webhooks.provision_from_event", fail)
    response = _post(client, _user_event("user.created"))
    assert response.status_code == 500
    assert response.json() == {"detail": "Error creating or updating user"}


def test_user_updated_to_taken_email_is_500(client, db, user_factory):
    user_factory("gina", external_id="idp_gina")
    user_factory("other", email="gina.new@example.com")

    response = _post(
        client,
        _user_event(
            "user.updated", email_addresses=[{"email_address": "gina.new@example.com"}]
        ),
    )
    assert response.status_code == 500
    assert response.json() == {"detail": "Error creating or updating user"}
    gina = db.query(models.User).filter_by(external_id="idp_gina").one()
    assert gina.email == "gina@example.com"


def test_unparseable_body(client, db):
    body = "{not json"
    response = client.post("/webhooks/identity", content=body, headers=_signed_headers(body))
    assert response.status_code == 400
    assert db.query(models.User).count() == 0
