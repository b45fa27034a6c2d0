"""
Enrichment Package

Reverse geocoding of cluster centers and fire-news lookup per place, with a
static fallback corpus when the news service has nothing.
"""

from .fallback import FALLBACK_ARTICLES, select_fallback_articles
from .geocoding import GeocodingError, MapboxGeocoder
from .news_collect import NewsClient, NewsError, build_query
from .pipeline import EnrichmentPipeline

__all__ = [
    "FALLBACK_ARTICLES",
    "select_fallback_articles",
    "GeocodingError",
    "MapboxGeocoder",
    "NewsClient",
    "NewsError",
    "build_query",
    "EnrichmentPipeline",
]
