"""Identity provider webhook endpoint."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from svix.webhooks import Webhook, WebhookVerificationError

from .. import settings
from ..deps import get_store
from ..errors import ValidationError
from ..services.users import provision_from_event
from ..store import EntityStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

SIGNATURE_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")


@router.post("/identity")
async def identity_webhook(
    request: Request,
    store: EntityStore = Depends(get_store),
) -> dict:
    """
    Receive user lifecycle events from the identity provider.

    The payload is only trusted after its signature verifies against
    IDENTITY_WEBHOOK_SECRET. `user.created` and `user.updated` provision or
    sync the user record.
    """
    secret = settings.IDENTITY_WEBHOOK_SECRET
    if not secret:
        logger.error("IDENTITY_WEBHOOK_SECRET is not set, cannot verify webhooks")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook secret not configured",
        )

    headers = {name: request.headers.get(name) for name in SIGNATURE_HEADERS}
    if not all(headers.values()):
        logger.warning("Rejected identity webhook without signature headers")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing signature headers",
        )

    body = await request.body()
    try:
        Webhook(secret).verify(body, headers)
    except WebhookVerificationError as e:
        logger.warning(f"Rejected identity webhook with bad signature: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature",
        )

    # verify() only checks the signature; parse the verified body here
    try:
        event = json.loads(body)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Malformed event payload",
        )

    event_type = event.get("type") if isinstance(event, dict) else None
    data = event.get("data") if isinstance(event, dict) else None
    if not event_type or not isinstance(data, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Malformed event payload",
        )

    try:
        user = provision_from_event(store, event_type, data)
    except ValidationError as e:
        logger.warning(f"Rejected {event_type} event: {e.message}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating or updating user from {event_type}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error creating or updating user",
        )

    if user is not None:
        logger.info(f"Processed {event_type} for user {user.id}")
    return {"status": "ok"}
