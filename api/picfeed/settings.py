"""Centralized environment-driven settings.

Keep this module lightweight: stdlib only, no app imports, to avoid circular deps.
Values are read at import time; `main` loads `.env` before anything imports this.
"""

from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _list_env(name: str, default: str) -> list[str]:
    raw = os.getenv(name) or default
    return [item.strip() for item in raw.split(",") if item.strip()]


LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# Apply Alembic migrations on startup. Tests turn this off and build the
# schema from the metadata instead.
RUN_MIGRATIONS: bool = _bool_env("RUN_MIGRATIONS", True)

CORS_ORIGINS: list[str] = _list_env("CORS_ORIGINS", "http://localhost:8081,http://localhost")

# Identity provider session tokens.
# RS256 expects IDENTITY_JWT_KEY to hold the provider's PEM public key.
IDENTITY_JWT_KEY: str | None = os.getenv("IDENTITY_JWT_KEY")
IDENTITY_JWT_ALGORITHMS: list[str] = _list_env("IDENTITY_JWT_ALGORITHMS", "RS256")
IDENTITY_JWT_ISSUER: str | None = os.getenv("IDENTITY_JWT_ISSUER") or None
IDENTITY_JWT_AUDIENCE: str | None = os.getenv("IDENTITY_JWT_AUDIENCE") or None

# Shared secret ("whsec_...") for identity provider webhooks.
IDENTITY_WEBHOOK_SECRET: str | None = os.getenv("IDENTITY_WEBHOOK_SECRET") or None

# Blob store
PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")
UPLOAD_TOKEN_SECRET: str | None = os.getenv("UPLOAD_TOKEN_SECRET")
UPLOAD_TOKEN_TTL_SECONDS: int = _int_env("UPLOAD_TOKEN_TTL_SECONDS", 3600)
# Configured via .env: MAX_UPLOAD_BYTES=10485760  (10 MiB)
MAX_UPLOAD_BYTES: int = _int_env("MAX_UPLOAD_BYTES", 10 * 1024 * 1024)

# Fallback avatar when the identity provider sends none.
DEFAULT_USER_IMAGE: str = os.getenv("DEFAULT_USER_IMAGE", "https://via.placeholder.com/150")
