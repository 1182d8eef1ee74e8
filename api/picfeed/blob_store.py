"""Blob store for post images.

Images live in a vault on disk using a hash-based folder structure derived
from the storage id, so that no single folder has too many files.

Example:
    If the storage id is "3f2a..." and it hashes to "a1b2c3..."
    the file is stored at: VAULT_LOCATION/a1/b2/c3/3f2a....jpg

Uploads go straight from the client to `POST /storage/upload` with a
short-lived signed token minted by `generate_upload_url()`; the service
itself only ever resolves and releases storage ids.
"""

from __future__ import annotations

import hashlib
import io
import logging
import os
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Protocol

import jwt
from PIL import Image, UnidentifiedImageError

from .errors import ConflictError, Unauthenticated, UpstreamFailure, ValidationError
from .settings import (
    MAX_UPLOAD_BYTES,
    PUBLIC_BASE_URL,
    UPLOAD_TOKEN_SECRET,
    UPLOAD_TOKEN_TTL_SECONDS,
)

logger = logging.getLogger(__name__)

UPLOAD_TOKEN_ALGORITHM = "HS256"

# Pillow format name -> stored file extension
ALLOWED_FORMATS: dict[str, str] = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "GIF": ".gif",
    "WEBP": ".webp",
}


class BlobStore(Protocol):
    """Opaque blob store consumed by the post lifecycle."""

    def generate_upload_url(self) -> str: ...

    def get_url(self, storage_id: str) -> str | None: ...

    def delete(self, storage_id: str) -> None: ...


def get_vault_location() -> Path:
    """Get the vault location from environment variable."""
    vault_path = os.environ.get("VAULT_LOCATION")
    if not vault_path:
        raise ValueError("VAULT_LOCATION environment variable is not set")
    return Path(vault_path)


def hash_storage_id(storage_id: str) -> str:
    """Hash the storage id using SHA256 for folder structure derivation."""
    return hashlib.sha256(storage_id.encode()).hexdigest()


def get_blob_folder_path(storage_id: str) -> Path:
    hash_value = hash_storage_id(storage_id)
    return get_vault_location() / hash_value[0:2] / hash_value[2:4] / hash_value[4:6]


def is_valid_storage_id(storage_id: str) -> bool:
    try:
        return uuid.UUID(storage_id).hex == storage_id
    except (ValueError, AttributeError, TypeError):
        return False


def detect_image_extension(content: bytes) -> str:
    """Return the file extension for an uploaded image, or raise ValidationError."""
    try:
        with Image.open(io.BytesIO(content)) as img:
            image_format = img.format
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Rejected upload that is not a readable image: {e}")
        raise ValidationError("Could not read image file") from e

    extension = ALLOWED_FORMATS.get(image_format or "")
    if extension is None:
        raise ValidationError(
            f"Image format '{image_format}' is not allowed. Allowed formats: {list(ALLOWED_FORMATS)}"
        )
    return extension


class VaultBlobStore:
    """Filesystem-backed blob store rooted at VAULT_LOCATION."""

    def __init__(self, secret: str | None = None, base_url: str | None = None):
        self.secret = secret or UPLOAD_TOKEN_SECRET
        self.base_url = (base_url or PUBLIC_BASE_URL).rstrip("/")

    def _find_blob(self, storage_id: str) -> Path | None:
        if not is_valid_storage_id(storage_id):
            return None
        folder = get_blob_folder_path(storage_id)
        if not folder.exists():
            return None
        matches = sorted(folder.glob(f"{storage_id}.*"))
        return matches[0] if matches else None

    def create_upload_token(self, storage_id: str | None = None) -> tuple[str, str]:
        """Mint a single-use upload token. Returns (token, storage_id)."""
        if not self.secret:
            raise UpstreamFailure("Blob store is not configured")
        storage_id = storage_id or uuid.uuid4().hex
        now = datetime.now(timezone.utc)
        payload = {
            "sid": storage_id,
            "iat": now,
            "exp": now + timedelta(seconds=UPLOAD_TOKEN_TTL_SECONDS),
            "type": "upload",
        }
        return jwt.encode(payload, self.secret, algorithm=UPLOAD_TOKEN_ALGORITHM), storage_id

    def generate_upload_url(self) -> str:
        token, _ = self.create_upload_token()
        return f"{self.base_url}/storage/upload?token={token}"

    def save_upload(self, token: str, content: bytes) -> str:
        """
        Store uploaded bytes for the storage id carried by the token.

        Returns:
            The storage id the client passes to post creation.
        """
        if not self.secret:
            raise UpstreamFailure("Blob store is not configured")
        try:
            payload = jwt.decode(token, self.secret, algorithms=[UPLOAD_TOKEN_ALGORITHM])
        except jwt.ExpiredSignatureError as e:
            raise Unauthenticated("Upload token expired") from e
        except jwt.InvalidTokenError as e:
            raise Unauthenticated("Invalid upload token") from e

        storage_id = payload.get("sid")
        if payload.get("type") != "upload" or not is_valid_storage_id(storage_id):
            raise Unauthenticated("Invalid upload token")

        if not content:
            raise ValidationError("Empty upload")
        if len(content) > MAX_UPLOAD_BYTES:
            raise ValidationError(
                f"File size ({len(content)} bytes) exceeds limit of {MAX_UPLOAD_BYTES} bytes"
            )

        extension = detect_image_extension(content)

        if self._find_blob(storage_id) is not None:
            raise ConflictError("Upload token already used")

        folder = get_blob_folder_path(storage_id)
        file_path = folder / f"{storage_id}{extension}"
        try:
            folder.mkdir(parents=True, exist_ok=True)
            with open(file_path, "xb") as f:
                f.write(content)
        except FileExistsError as e:
            raise ConflictError("Upload token already used") from e
        except OSError as e:
            logger.error(f"Failed to save blob {storage_id}: {e}")
            raise UpstreamFailure("Failed to store upload") from e

        logger.info(f"Saved blob {storage_id} to {file_path}")
        return storage_id

    def get_url(self, storage_id: str) -> str | None:
        """Public URL for a stored blob, or None if no such blob exists."""
        file_path = self._find_blob(storage_id)
        if file_path is None:
            return None
        relative = file_path.relative_to(get_vault_location()).as_posix()
        return f"{self.base_url}/vault/{relative}"

    def delete(self, storage_id: str) -> None:
        """Release a blob. Releasing a blob that is already gone is a no-op."""
        file_path = self._find_blob(storage_id)
        if file_path is None:
            logger.warning(f"Blob {storage_id} not found in vault, nothing to release")
            return
        try:
            file_path.unlink()
        except OSError as e:
            logger.error(f"Failed to delete blob {storage_id}: {e}")
            raise UpstreamFailure("Failed to release image") from e
        logger.info(f"Deleted blob {storage_id} from {file_path}")
