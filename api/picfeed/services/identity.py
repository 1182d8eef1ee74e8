"""Identity resolution: map a verified principal to its user record."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .. import models
from ..errors import Unauthenticated, UserNotFound
from ..store import EntityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Principal:
    """Identity asserted by the identity provider for one request."""

    subject: str  # provider user id
    email: str | None = None


def normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


def resolve_user(store: EntityStore, principal: Principal | None) -> models.User:
    """
    Resolve the calling principal to a user.

    Email is the primary lookup. Users are provisioned asynchronously by the
    identity webhook, so a freshly registered caller may already be stored
    under its provider id while the email lookup misses; the provider id
    lookup covers that window.

    Raises:
        Unauthenticated: no principal.
        UserNotFound: neither lookup matches.
    """
    if principal is None:
        raise Unauthenticated()

    user = None
    email = normalize_email(principal.email)
    if email:
        user = store.first(models.User, email=email)

    if user is None:
        user = store.first(models.User, external_id=principal.subject)
        if user is not None:
            logger.info(f"Resolved user {user.id} by external id fallback")

    if user is None:
        raise UserNotFound()

    return user
