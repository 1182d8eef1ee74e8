from __future__ import annotations

import io
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RUN_MIGRATIONS"] = "false"
os.environ["IDENTITY_JWT_KEY"] = "picfeed-test-identity-signing-key-0123456789"
os.environ["IDENTITY_JWT_ALGORITHMS"] = "HS256"
os.environ["UPLOAD_TOKEN_SECRET"] = "picfeed-test-upload-signing-key-0123456789"
os.environ["IDENTITY_WEBHOOK_SECRET"] = "whsec_cGljZmVlZC10ZXN0LXdlYmhvb2stc2lnbmluZy1rZXkh"
os.environ["PUBLIC_BASE_URL"] = "http://testserver"
os.environ.setdefault("VAULT_LOCATION", tempfile.mkdtemp(prefix="picfeed-vault-"))

import jwt  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from picfeed import models  # noqa: E402
from picfeed.blob_store import VaultBlobStore  # noqa: E402
from picfeed.db import Base, SessionLocal, engine  # noqa: E402
from picfeed.deps import get_db  # noqa: E402
from picfeed.main import app  # noqa: E402
from picfeed.services import posts as post_service  # noqa: E402
from picfeed.services.users import create_user  # noqa: E402
from picfeed.store import EntityStore  # noqa: E402

IDENTITY_KEY = os.environ["IDENTITY_JWT_KEY"]


@pytest.fixture(autouse=True)
def vault(tmp_path, monkeypatch):
    """Isolated vault directory per test."""
    location = tmp_path / "vault"
    location.mkdir()
    monkeypatch.setenv("VAULT_LOCATION", str(location))
    return location


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """Create a fresh schema and a session for testing."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def store(db: Session) -> EntityStore:
    return EntityStore(db)


@pytest.fixture()
def blobs() -> VaultBlobStore:
    return VaultBlobStore()


@pytest.fixture()
def client(db: Session) -> Generator[TestClient, None, None]:
    """Test client whose requests share the test's session."""

    def override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def make_token(
    subject: str,
    email: str | None = None,
    expires_in: timedelta = timedelta(minutes=5),
    key: str = IDENTITY_KEY,
) -> str:
    """Identity provider style session token."""
    payload = {"sub": subject, "exp": datetime.now(timezone.utc) + expires_in}
    if email is not None:
        payload["email"] = email
    return jwt.encode(payload, key, algorithm="HS256")


def auth_headers(user: models.User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user.external_id, user.email)}"}


def make_image_bytes(fmt: str = "PNG", size: tuple[int, int] = (4, 4)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (200, 40, 40)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture()
def user_factory(store: EntityStore) -> Callable[..., models.User]:
    """Provision users named alice, bob, ... by default."""
    counter = {"n": 0}

    def factory(name: str | None = None, **kwargs) -> models.User:
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        return create_user(
            store,
            email=kwargs.pop("email", f"{name}@example.com"),
            external_id=kwargs.pop("external_id", f"idp_{name}"),
            fullname=kwargs.pop("fullname", name.title()),
            **kwargs,
        )

    return factory


@pytest.fixture()
def upload(blobs: VaultBlobStore) -> Callable[[], str]:
    """Store a small PNG in the vault and return its storage id."""

    def do_upload() -> str:
        token, _ = blobs.create_upload_token()
        return blobs.save_upload(token, make_image_bytes())

    return do_upload


@pytest.fixture()
def post_factory(store: EntityStore, blobs: VaultBlobStore, upload) -> Callable[..., models.Post]:
    def factory(owner: models.User, caption: str | None = None) -> models.Post:
        return post_service.create_post(store, blobs, owner, upload(), caption)

    return factory
