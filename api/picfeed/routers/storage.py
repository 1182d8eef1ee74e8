"""Blob upload endpoint.

Clients upload image bytes here directly, authorized by the token embedded
in the URL from `POST /posts/upload-url`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from .. import schemas
from ..blob_store import VaultBlobStore
from ..deps import get_blob_store

router = APIRouter(prefix="/storage", tags=["Storage"])


@router.post("/upload", response_model=schemas.UploadResponse)
async def upload_blob(
    request: Request,
    token: str = Query(..., min_length=1),
    blobs: VaultBlobStore = Depends(get_blob_store),
) -> schemas.UploadResponse:
    """
    Store the raw request body as an image.

    Returns the storage_id to reference when creating a post.
    """
    content = await request.body()
    return schemas.UploadResponse(storage_id=blobs.save_upload(token, content))
