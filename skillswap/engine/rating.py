"""
skillswap.engine.rating — Running-Mean Rating Fold
===================================================

``average' = (average * count + r) / (count + 1)``

:func:`next_average` is written with plain arithmetic so the same
expression works on Python numbers *and* on SQLAlchemy column expressions.
The rating service feeds it the columns themselves, which turns the fold
into a single ``UPDATE … SET`` that reads and writes in one statement.
"""

from __future__ import annotations

from skillswap.constants import MAX_RATING, MIN_RATING
from skillswap.errors import ValidationError


def validate_rating(value: object) -> int:
    """Return *value* if it is an integer rating in range, else raise."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}")
    if not MIN_RATING <= value <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    return value


def next_average(average, count, rating):
    return (average * count + rating) / (count + 1)

