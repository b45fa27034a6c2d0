"""
Enrichment Pipeline

Attaches news to the places around the current clusters:
1. Reverse-geocodes each cluster center to place names
2. Forward-geocodes each distinct name to coordinates
3. Fetches up to 3 recent fire-related articles per place

When the news service fails or returns nothing for a place, 1-3 articles from
the static fallback corpus are substituted. Geocoding failures fall back to the
last successful answer for the same lookup. The pipeline runs on its own
executor and never blocks clustering; cancelled runs are discarded.
"""

import concurrent.futures as cf
import random
import threading
from collections import OrderedDict
from typing import Callable, Dict, Iterable, List, Optional

from ..config import NEWS_LIMIT
from ..data.models import Cluster, Coordinate, LocationEnrichment
from .fallback import FALLBACK_ARTICLES, select_fallback_articles
from .geocoding import GeocodingError
from .news_collect import NewsError


# Last-known-good lookups kept per cache
KNOWN_CACHE_SIZE = 256


def _coordinate_key(coordinate: Coordinate):
    # ~10 m buckets so nearby recomputed centroids share cached names
    return (round(coordinate[0], 4), round(coordinate[1], 4))


class EnrichmentPipeline:
    """Place-name and news lookup for cluster centers."""

    def __init__(
        self,
        geocoder,
        news_client,
        rng: Optional[random.Random] = None,
        news_limit: int = NEWS_LIMIT,
        corpus=FALLBACK_ARTICLES,
        max_workers: int = 2,
        verbose: bool = False,
    ):
        self.geocoder = geocoder
        self.news_client = news_client
        self.rng = rng or random.Random()
        self.news_limit = news_limit
        self.corpus = corpus
        self.verbose = verbose

        self._executor = cf.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="firewatch-enrich"
        )
        self._lock = threading.RLock()
        self._generation = 0
        self._submitted = 0
        self._applied = 0
        self._closed = False
        self._futures = set()
        self._latest: Dict[str, LocationEnrichment] = {}
        self._known_names: OrderedDict = OrderedDict()
        self._known_coordinates: OrderedDict = OrderedDict()

    @property
    def latest(self) -> Dict[str, LocationEnrichment]:
        """Last completed, non-cancelled enrichment result."""
        return dict(self._latest)

    def place_names(self, clusters: Iterable[Cluster]) -> List[str]:
        """Distinct place names around the cluster centers, in first-seen order."""
        names = []
        for cluster in clusters:
            key = _coordinate_key(cluster.center)
            try:
                found = self.geocoder.reverse(*cluster.center)
                self._remember(self._known_names, key, found)
            except GeocodingError as e:
                found = self._recall(self._known_names, key, [])
                print(f"[ERROR] Reverse geocoding failed for {cluster.center}: {e}")
            for name in found:
                if name not in names:
                    names.append(name)
        return names

    def locate(self, name: str) -> Optional[Coordinate]:
        try:
            coordinates = self.geocoder.forward(name)
            if coordinates is not None:
                self._remember(self._known_coordinates, name, coordinates)
            return coordinates
        except GeocodingError as e:
            print(f"[ERROR] Geocoding failed for {name}: {e}")
            return self._recall(self._known_coordinates, name)

    def _remember(self, cache: OrderedDict, key, value):
        with self._lock:
            cache[key] = value
            cache.move_to_end(key)
            while len(cache) > KNOWN_CACHE_SIZE:
                cache.popitem(last=False)

    def _recall(self, cache: OrderedDict, key, default=None):
        with self._lock:
            if key not in cache:
                return default
            cache.move_to_end(key)
            return cache[key]

    def articles_for(self, name: str):
        """Up to news_limit articles for a place; never empty."""
        try:
            articles = self.news_client.fetch_news(name, limit=self.news_limit)
        except NewsError as e:
            print(f"[ERROR] News lookup failed for {name}: {e}")
            articles = []

        if articles:
            return tuple(articles[: self.news_limit])

        print(f"[WARNING] No articles returned for {name} - using fallback articles")
        return select_fallback_articles(self.rng, self.corpus, self.news_limit)

    def enrich(self, clusters: Iterable[Cluster]) -> Dict[str, LocationEnrichment]:
        """
        Build the enrichment mapping for a cluster set.

        Args:
            clusters: Clusters whose centers should be described

        Returns:
            dict: place name -> LocationEnrichment, for names that could be located
        """
        result = {}
        for name in self.place_names(clusters):
            coordinates = self.locate(name)
            if coordinates is None:
                if self.verbose:
                    print(f"   [SKIP] No coordinates for {name}")
                continue
            result[name] = LocationEnrichment(
                name=name, coordinates=coordinates, articles=self.articles_for(name)
            )

        if self.verbose:
            print(f"   Enriched {len(result)} places")
        return result

    def submit(
        self,
        clusters: Iterable[Cluster],
        on_done: Optional[Callable[[Dict[str, LocationEnrichment]], None]] = None,
    ) -> Optional[cf.Future]:
        """
        Run enrich() in the background.

        Each submission supersedes the earlier ones: a run that finishes after
        a newer run was applied, or after cancel(), is dropped. Returns None
        once the pipeline has been shut down.
        """
        clusters = tuple(clusters)
        with self._lock:
            if self._closed:
                if self.verbose:
                    print("   [SKIP] Enrichment pipeline is shut down")
                return None
            generation = self._generation
            self._submitted += 1
            ticket = self._submitted
            future = self._executor.submit(self.enrich, clusters)
            self._futures.add(future)

        def _finish(done: cf.Future):
            with self._lock:
                self._futures.discard(done)
                if done.cancelled() or generation != self._generation:
                    return
                if ticket < self._applied:
                    return
                error = done.exception()
                if error is not None:
                    print(f"[ERROR] Enrichment failed: {error}")
                    return
                result = done.result()
                self._applied = ticket
                self._latest = result
                # under the lock so callbacks arrive in submission order
                if on_done is not None:
                    on_done(dict(result))

        future.add_done_callback(_finish)
        return future

    def cancel(self):
        """Cancel pending runs and discard any that are already executing."""
        with self._lock:
            self._generation += 1
            for future in list(self._futures):
                future.cancel()

    def shutdown(self):
        with self._lock:
            self._closed = True
            self.cancel()
            self._executor.shutdown(wait=False, cancel_futures=True)
