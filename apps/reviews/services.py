"""Venue rating aggregation."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from apps.venues.models import Venue

logger = logging.getLogger(__name__)


def average_rating(ratings: Iterable[int]) -> Decimal:
    """Mean of ``ratings`` rounded half-up to one decimal; 0.0 when empty."""
    ratings = list(ratings)
    if not ratings:
        return Decimal("0.0")
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def recalculate_venue_rating(venue_id: int) -> Decimal:
    """Store the venue's mean rating and review count."""
    from .models import Review

    ratings = list(Review.objects.filter(venue_id=venue_id).values_list("rating", flat=True))
    rating = average_rating(ratings)
    Venue.objects.filter(pk=venue_id).update(rating=rating, review_count=len(ratings))
    logger.info("Venue %s rating recalculated: %s from %s reviews", venue_id, rating, len(ratings))
    return rating
