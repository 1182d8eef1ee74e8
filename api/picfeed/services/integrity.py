"""
Integrity checks for denormalized counters and post references.

Counters are maintained incrementally by the service layer. These checks
recount them from the relation rows so drift can be detected (the test
suite runs them after every scenario) and repaired (scripts/check_counters.py).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models

logger = logging.getLogger(__name__)

# (entity model, counter field, relation column whose rows are counted)
COUNTER_CHECKS = (
    (models.User, "posts", models.Post.user_id),
    (models.User, "followers", models.Follow.following_id),
    (models.User, "following", models.Follow.follower_id),
    (models.Post, "likes", models.Like.post_id),
    (models.Post, "comments", models.Comment.post_id),
)

# Relations that must not outlive their post
POST_REFERENCES = (
    models.Like,
    models.Comment,
    models.Bookmark,
    models.Notification,
)


@dataclass(frozen=True)
class CounterDrift:
    table: str
    entity_id: int
    field: str
    stored: int
    actual: int


@dataclass(frozen=True)
class DanglingReference:
    table: str
    row_id: int
    post_id: int


def find_counter_drift(db: Session) -> list[CounterDrift]:
    """Every counter whose stored value differs from its recount."""
    drifts: list[CounterDrift] = []
    for model, field, relation_column in COUNTER_CHECKS:
        actual = dict(
            db.query(relation_column, func.count()).group_by(relation_column).all()
        )
        for entity_id, stored in db.query(model.id, getattr(model, field)).all():
            expected = actual.get(entity_id, 0)
            if stored != expected:
                drifts.append(
                    CounterDrift(
                        table=model.__tablename__,
                        entity_id=entity_id,
                        field=field,
                        stored=stored,
                        actual=expected,
                    )
                )
    return drifts


def repair_counter_drift(db: Session, drifts: list[CounterDrift]) -> int:
    """Overwrite drifted counters with their recounted values."""
    models_by_table = {model.__tablename__: model for model, _, _ in COUNTER_CHECKS}
    for drift in drifts:
        model = models_by_table[drift.table]
        db.query(model).filter(model.id == drift.entity_id).update(
            {drift.field: drift.actual}, synchronize_session=False
        )
        logger.info(
            f"Repaired {drift.table}.{drift.field} for {drift.entity_id}: "
            f"{drift.stored} -> {drift.actual}"
        )
    db.commit()
    return len(drifts)


def find_dangling_references(db: Session) -> list[DanglingReference]:
    """Rows still pointing at a post that no longer exists."""
    dangling: list[DanglingReference] = []
    for model in POST_REFERENCES:
        rows = (
            db.query(model.id, model.post_id)
            .outerjoin(models.Post, models.Post.id == model.post_id)
            .filter(model.post_id.isnot(None), models.Post.id.is_(None))
            .all()
        )
        dangling.extend(
            DanglingReference(table=model.__tablename__, row_id=row_id, post_id=post_id)
            for row_id, post_id in rows
        )
    return dangling
