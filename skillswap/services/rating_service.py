"""
skillswap.services.rating_service — Atomic Rating Aggregation
==============================================================

Folds one feedback rating into a member's running average.

The read-modify-write of ``(rating_average, rating_count)`` is a single
``UPDATE members SET …`` whose right-hand sides reference the current
column values.  The database evaluates it against the row as it stands
when the statement runs, so two swaps rating the same member at the same
time both land; neither overwrites the other.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select, update
from sqlalchemy.orm import Session

from skillswap.database.models import Member
from skillswap.engine.rating import next_average, validate_rating
from skillswap.errors import NotFound
from skillswap.services.member_service import expire_member_fields

logger = logging.getLogger(__name__)


def fold_rating(session: Session, member_id: str, rating: int) -> float:
    """Apply *rating* to *member_id* inside the caller's transaction.

    Returns the updated average as seen by this transaction.
    """
    rating = validate_rating(rating)
    result = session.execute(
        update(Member)
        .where(Member.id == member_id)
        .values(
            rating_average=next_average(Member.rating_average, Member.rating_count, rating),
            rating_count=Member.rating_count + 1,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFound("Member not found", {"member_id": member_id})

    expire_member_fields(session, member_id, "rating_average", "rating_count")
    return session.scalar(select(Member.rating_average).where(Member.id == member_id))


def apply_rating(engine: Engine, member_id: str, rating: int) -> float:
    """Standalone form of :func:`fold_rating` in its own transaction."""
    with Session(engine) as session:
        average = fold_rating(session, member_id, rating)
        session.commit()
    logger.info("Member %s rated %d → average %.2f", member_id, rating, average)
    return average
