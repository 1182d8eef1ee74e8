from __future__ import annotations

import logging

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from . import models
from .deps import get_store
from .errors import Unauthenticated, UserNotFound
from .services.identity import Principal, resolve_user
from .settings import (
    IDENTITY_JWT_ALGORITHMS,
    IDENTITY_JWT_AUDIENCE,
    IDENTITY_JWT_ISSUER,
    IDENTITY_JWT_KEY,
)
from .store import EntityStore

logger = logging.getLogger(__name__)

# Security scheme for Bearer token
oauth2_scheme = HTTPBearer(auto_error=False)


def decode_identity_token(token: str) -> Principal:
    """
    Verify an identity provider session token and extract the principal.

    The token must be signed with IDENTITY_JWT_KEY, unexpired, and carry a
    `sub` claim. `email` is optional; resolution falls back to `sub`.
    """
    if not IDENTITY_JWT_KEY:
        logger.error("IDENTITY_JWT_KEY is not set, cannot verify identity tokens")
        raise Unauthenticated("Identity verification is not configured")

    try:
        payload = jwt.decode(
            token,
            IDENTITY_JWT_KEY,
            algorithms=IDENTITY_JWT_ALGORITHMS,
            issuer=IDENTITY_JWT_ISSUER,
            audience=IDENTITY_JWT_AUDIENCE,
            options={
                "require": ["exp", "sub"],
                "verify_aud": IDENTITY_JWT_AUDIENCE is not None,
            },
        )
    except jwt.ExpiredSignatureError as e:
        raise Unauthenticated("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise Unauthenticated("Invalid token") from e

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise Unauthenticated("Invalid token: missing subject")

    email = payload.get("email")
    return Principal(subject=subject, email=email if isinstance(email, str) and email else None)


def principal_from_credentials(
    credentials: HTTPAuthorizationCredentials | None,
) -> Principal | None:
    if credentials is None:
        return None
    return decode_identity_token(credentials.credentials)


async def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(oauth2_scheme),
) -> Principal:
    """Require a verified identity without requiring a provisioned user."""
    principal = principal_from_credentials(credentials)
    if principal is None:
        raise Unauthenticated()
    return principal


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(oauth2_scheme),
    store: EntityStore = Depends(get_store),
) -> models.User:
    """
    Get the user record for the Bearer token.

    Raises Unauthenticated (no or bad token) or UserNotFound (no user record).
    """
    return resolve_user(store, principal_from_credentials(credentials))


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(oauth2_scheme),
    store: EntityStore = Depends(get_store),
) -> models.User | None:
    """
    Get current user if resolvable, None otherwise.

    Used by read endpoints, which return empty results instead of failing.
    """
    if credentials is None:
        return None

    try:
        return await get_current_user(credentials, store)
    except (Unauthenticated, UserNotFound) as e:
        logger.warning(f"Caller could not be resolved, serving empty result: {e.message}")
        return None
