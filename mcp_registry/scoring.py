"""
Popularity scoring.

Formula: (stars * 0.4) + (log10(downloads + 1) * 0.3) + (recency * 0.3)
where recency falls linearly from 1 to 0 over the year after the last update.
"""

import math
from datetime import datetime

from mcp_registry.models import utcnow

STARS_WEIGHT = 0.4
DOWNLOADS_WEIGHT = 0.3
RECENCY_WEIGHT = 0.3
RECENCY_WINDOW_DAYS = 365


def days_since(last_updated: datetime, now: datetime | None = None) -> int:
    """Whole days elapsed since ``last_updated``; future timestamps count as 0."""
    now = now or utcnow()
    days = math.floor((now - last_updated).total_seconds() / 86400)
    return max(0, days)


def is_active(last_updated: datetime, now: datetime | None = None, active_days: int = 180) -> bool:
    """A package is active when it was updated within ``active_days``."""
    return days_since(last_updated, now) <= active_days


def calculate_popularity_score(
    stars: int | None,
    downloads: int | None,
    last_updated: datetime,
    now: datetime | None = None,
) -> float:
    """
    Compute the popularity scalar for a record.

    Missing signals count as zero.

    Args:
        stars: Star-like count (GitHub)
        downloads: Download-like count reported by the origin registry
        last_updated: Last modification time (aware datetime)
        now: Reference time (defaults to current UTC time)

    Returns:
        Score rounded to 2 decimal places
    """
    stars = stars or 0
    downloads = max(downloads or 0, 0)

    recency = max(0.0, 1 - days_since(last_updated, now) / RECENCY_WINDOW_DAYS)

    score = (
        stars * STARS_WEIGHT
        + math.log10(downloads + 1) * DOWNLOADS_WEIGHT
        + recency * RECENCY_WEIGHT
    )
    return round(score, 2)
