"""Entity store adapter.

Thin CRUD and indexed-lookup layer over a SQLAlchemy session. Services never
commit on their own: each operation wraps its reads and writes in
`EntityStore.transaction()` so the whole operation is one atomic unit.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, TypeVar

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import ConflictError

logger = logging.getLogger(__name__)

M = TypeVar("M")


class EntityStore:
    """Session-backed store for the social-graph collections."""

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def transaction(self) -> Iterator[EntityStore]:
        """
        Run one operation atomically.

        Commits when the block exits cleanly. Any exception rolls back every
        write made in the block. A unique-constraint violation means another
        caller won a race on the same relation row and is reported as
        ConflictError.
        """
        try:
            yield self
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            logger.warning(f"Integrity error, transaction rolled back: {e.orig}")
            raise ConflictError() from e
        except Exception:
            self.session.rollback()
            raise

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, model: type[M], entity_id: Any) -> M | None:
        if entity_id is None:
            return None
        return self.session.get(model, entity_id)

    def first(self, model: type[M], **index: Any) -> M | None:
        return self.session.query(model).filter_by(**index).first()

    def all(self, model: type[M], *order_by: Any, **index: Any) -> list[M]:
        query = self.session.query(model).filter_by(**index)
        if order_by:
            query = query.order_by(*order_by)
        return query.all()

    def exists(self, model: type[M], **index: Any) -> bool:
        return self.session.query(
            self.session.query(model).filter_by(**index).exists()
        ).scalar()

    def get_many(self, model: type[M], ids: Iterable[Any]) -> dict[Any, M]:
        """Batch point lookup by primary key; missing ids are simply absent."""
        ids = {i for i in ids if i is not None}
        if not ids:
            return {}
        rows = self.session.query(model).filter(model.id.in_(ids)).all()
        return {row.id: row for row in rows}

    def existing_values(
        self, model: type[M], field: str, values: Iterable[Any], **index: Any
    ) -> set[Any]:
        """
        Which of `values` appear in `field` among rows matching the index.

        e.g. existing_values(Like, "post_id", post_ids, user_id=viewer_id)
        gives the subset of post_ids the viewer has liked.
        """
        values = set(values)
        if not values:
            return set()
        column = getattr(model, field)
        rows = (
            self.session.query(column)
            .filter_by(**index)
            .filter(column.in_(values))
            .all()
        )
        return {row[0] for row in rows}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(self, entity: M) -> M:
        """Add an entity and flush so its database-assigned id is available."""
        self.session.add(entity)
        self.session.flush()
        return entity

    def delete(self, entity: Any) -> None:
        self.session.delete(entity)
        self.session.flush()

    def delete_where(self, model: type[M], **index: Any) -> int:
        """Delete every row matching the index values; returns the row count."""
        return (
            self.session.query(model)
            .filter_by(**index)
            .delete(synchronize_session=False)
        )

    def adjust(self, entity: Any, field: str, delta: int) -> None:
        """
        Apply a counter delta in SQL (col = col + delta).

        Decrements are clamped at zero. The attribute is expired after the
        flush and reloads with the stored value on next access.
        """
        column = getattr(type(entity), field)
        if delta < 0:
            setattr(entity, field, case((column + delta < 0, 0), else_=column + delta))
        else:
            setattr(entity, field, column + delta)
        self.session.flush()
