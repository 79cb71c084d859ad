"""Driver rating aggregation."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from .errors import InvalidRating

MIN_RATING = 1
MAX_RATING = 5


def validate_rating(rating: Any) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRating(rating)
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRating(rating)
    return rating


def average_rating(ratings: Iterable[int]) -> Optional[float]:
    """
    Arithmetic mean of *ratings*, rounded half-up to one decimal.

    Computed over the full history each time; Decimal keeps the rounding
    identical to what drivers have always been shown (4.25 -> 4.3).
    """
    values = [Decimal(int(r)) for r in ratings]
    if not values:
        return None
    mean = sum(values) / Decimal(len(values))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
