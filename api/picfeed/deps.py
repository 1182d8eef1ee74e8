from __future__ import annotations

from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from .blob_store import BlobStore, VaultBlobStore
from .db import get_session
from .store import EntityStore


def get_db() -> Generator[Session, None, None]:
    yield from get_session()


def get_store(db: Session = Depends(get_db)) -> EntityStore:
    return EntityStore(db)


def get_blob_store() -> BlobStore:
    return VaultBlobStore()
