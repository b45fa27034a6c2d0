"""
News Collection Helper Module

Queries TheNewsAPI for recent fire-related articles about a place.
"""

from typing import List, Optional

import requests

from ..config import NEWS_LIMIT
from ..data.incident_collect import create_session
from ..data.models import NewsArticle

URL = "https://api.thenewsapi.com/v1/news/all"
FIRE_KEYWORDS = ("fire", "wildfire", "burning")
TIMEOUT = (10, 30)


class NewsError(RuntimeError):
    """Raised when the news service request fails."""


def build_query(location: str) -> str:
    return f"{location} + ({' OR '.join(FIRE_KEYWORDS)})"


def sort_by_recency(articles: List[NewsArticle]) -> List[NewsArticle]:
    # ISO-8601 timestamps sort lexically; missing dates go last
    return sorted(articles, key=lambda a: a.published_at or "", reverse=True)


class NewsClient:
    """Fire news lookup for one place at a time."""

    def __init__(self, api_token: str, session: Optional[requests.Session] = None):
        if not api_token:
            raise ValueError("A news API token is required")
        self.api_token = api_token
        self.session = session or create_session()

    def fetch_news(self, location: str, limit: int = NEWS_LIMIT) -> List[NewsArticle]:
        """
        Fetch up to `limit` recent fire-related articles for a location.

        Args:
            location: Place name
            limit: Maximum number of articles

        Returns:
            list: Articles, newest first (possibly empty)

        Raises:
            NewsError: If the request fails or the payload is unreadable
        """
        params = {
            "api_token": self.api_token,
            "search": build_query(location),
            "limit": limit,
            "sort": "published_at",
        }
        try:
            r = self.session.get(URL, params=params, timeout=TIMEOUT)
            r.raise_for_status()
            payload = r.json()
        except requests.exceptions.HTTPError as e:
            raise NewsError(f"HTTP {e.response.status_code} for {location}") from e
        except requests.exceptions.RequestException as e:
            raise NewsError(f"Request failed for {location} - {str(e)[:100]}") from e
        except ValueError as e:
            raise NewsError(f"Invalid JSON for {location} - {e}") from e

        items = payload.get("data") if isinstance(payload, dict) else None
        if not items:
            return []

        articles = [NewsArticle.from_api(item) for item in items if isinstance(item, dict)]
        return sort_by_recency(articles)[:limit]
