"""
Fallback news corpus used when the news service fails or has nothing for a
place. Selection goes through an injectable random.Random so it can be seeded.
"""

import random
from dataclasses import replace
from typing import Optional, Sequence, Tuple

from ..config import NEWS_LIMIT
from ..data.models import NewsArticle

FALLBACK_ARTICLES: Tuple[NewsArticle, ...] = (
    NewsArticle(
        title="Crews contain brush fire near residential area",
        description="Fire crews responded to a brush fire that spread across dry grass before it was contained.",
        source="local-fallback",
        published_at="2025-01-10T18:20:00Z",
        is_fallback=True,
    ),
    NewsArticle(
        title="Residents urged to prepare go-bags as fire danger rises",
        description="Officials ask residents to keep emergency kits ready while dry, windy conditions persist.",
        source="local-fallback",
        published_at="2025-01-09T15:05:00Z",
        is_fallback=True,
    ),
    NewsArticle(
        title="Campfire ban extended across the region",
        description="The ban on open fires remains in place until further notice due to high wildfire risk.",
        source="local-fallback",
        published_at="2025-01-08T09:30:00Z",
        is_fallback=True,
    ),
    NewsArticle(
        title="Smoke advisory issued as wildfires burn to the north",
        description="Air quality may deteriorate; people with respiratory conditions should limit time outdoors.",
        source="local-fallback",
        published_at="2025-01-07T12:00:00Z",
        is_fallback=True,
    ),
    NewsArticle(
        title="Firefighters knock down blaze at industrial site",
        description="No injuries were reported after a fire broke out in a storage yard overnight.",
        source="local-fallback",
        published_at="2025-01-06T06:45:00Z",
        is_fallback=True,
    ),
    NewsArticle(
        title="How to report a fire sighting safely",
        description="Emergency services explain what information to share when calling in smoke or flames.",
        source="local-fallback",
        published_at="2025-01-05T10:10:00Z",
        is_fallback=True,
    ),
)


def select_fallback_articles(
    rng: Optional[random.Random] = None,
    corpus: Sequence[NewsArticle] = FALLBACK_ARTICLES,
    max_count: int = NEWS_LIMIT,
) -> Tuple[NewsArticle, ...]:
    """Pick 1 to max_count distinct articles from the corpus."""
    if not corpus:
        raise ValueError("Fallback corpus is empty")
    rng = rng or random.Random()
    count = rng.randint(1, min(max_count, len(corpus)))
    return tuple(replace(a, is_fallback=True) for a in rng.sample(list(corpus), count))
