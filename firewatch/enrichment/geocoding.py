"""
Geocoding Helper Module

Resolves cluster centers to human-readable place names and place names back to
coordinates using the Mapbox Geocoding API. Responses are cached because the
places around a coordinate rarely change.
"""

from typing import List, Optional
from urllib.parse import quote

import requests
import requests_cache
from retry_requests import retry

from ..data.models import Coordinate

URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"
REVERSE_TYPES = "neighborhood,locality,place"
FORWARD_TYPES = "place,locality,neighborhood"
TIMEOUT = (10, 30)  # (connect, read) seconds
CACHE_EXPIRE_S = 24 * 3600


class GeocodingError(RuntimeError):
    """Raised when the geocoding service cannot answer a lookup."""


def create_cached_session(cache_name: str = ".cache/geocoding") -> requests.Session:
    """Cached session with exponential-backoff retries."""
    cache = requests_cache.CachedSession(cache_name, expire_after=CACHE_EXPIRE_S)
    return retry(cache, retries=3, backoff_factor=0.5)


class MapboxGeocoder:
    """Reverse and forward geocoding against Mapbox."""

    def __init__(self, access_token: str, session: Optional[requests.Session] = None):
        if not access_token:
            raise ValueError("A Mapbox access token is required for geocoding")
        self.access_token = access_token
        self.session = session or create_cached_session()

    def _get(self, path: str, types: str) -> dict:
        params = {"types": types, "access_token": self.access_token}
        try:
            r = self.session.get(f"{URL}/{path}.json", params=params, timeout=TIMEOUT)
            r.raise_for_status()
            return r.json()
        except requests.exceptions.HTTPError as e:
            raise GeocodingError(f"HTTP {e.response.status_code} for {path}") from e
        except requests.exceptions.RequestException as e:
            raise GeocodingError(f"Request failed for {path} - {str(e)[:100]}") from e
        except ValueError as e:
            raise GeocodingError(f"Invalid JSON for {path} - {e}") from e

    def reverse(self, longitude: float, latitude: float) -> List[str]:
        """Place names (neighborhood, locality, place) containing a coordinate."""
        data = self._get(f"{longitude},{latitude}", REVERSE_TYPES)
        return [f["text"] for f in data.get("features", []) if f.get("text")]

    def forward(self, name: str) -> Optional[Coordinate]:
        """Coordinates of the best match for a place name, or None."""
        data = self._get(quote(name), FORWARD_TYPES)
        features = data.get("features") or []
        if not features or len(features[0].get("center") or []) != 2:
            return None
        lng, lat = features[0]["center"]
        return (float(lng), float(lat))
