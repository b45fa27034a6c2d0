"""
Fire Cluster Engine

Wires the pipeline together:
    IncidentStore -> ProximityClusterer -> GeofenceBuilder -> ClusterMarkerProjector

A poll thread refreshes the incident snapshot on a fixed interval and the
viewport's moveend events are debounced; both feed the ReconciliationScheduler,
which runs the pipeline one at a time on the freshest snapshot and zoom.
Operations go to the renderer callback; after stop() nothing is emitted.
"""

import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .clusters.clustering import ProximityClusterer
from .clusters.geofence import GeofenceBuilder
from .config import EngineConfig
from .data.incident_store import IncidentStore
from .data.models import Cluster, LocationEnrichment, Snapshot
from .reconcile.projector import (
    ClusterMarkerProjector,
    Operation,
    assign_cluster_ids,
    counter_ids,
)
from .reconcile.scheduler import ReconciliationScheduler


class StaticViewport:
    """Viewport provider holding a zoom level set by the caller."""

    def __init__(self, zoom: float = 11.0):
        self._zoom = zoom

    def get_zoom(self) -> float:
        return self._zoom

    def set_zoom(self, zoom: float):
        self._zoom = zoom


@dataclass(frozen=True)
class ReconcileResult:
    snapshot_sequence: int
    zoom: float
    clusters: Tuple[Cluster, ...]
    operations: List[Operation] = field(default_factory=list)


class FireClusterEngine:
    """Clustering and geofencing engine with an explicit start/stop lifecycle."""

    def __init__(
        self,
        source,
        viewport,
        config: Optional[EngineConfig] = None,
        on_operations: Optional[Callable[[Sequence[Operation], Tuple[Cluster, ...]], None]] = None,
        enrichment=None,
        on_enrichment: Optional[Callable[[Dict[str, LocationEnrichment]], None]] = None,
        on_cluster_selected: Optional[Callable[[Cluster], None]] = None,
        timer_factory=threading.Timer,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Args:
            source: Incident source with fetch() -> list of documents
            viewport: Viewport provider with get_zoom() -> float
            config: Engine configuration (defaults if omitted)
            on_operations: Renderer callback receiving (operations, clusters)
            enrichment: Optional EnrichmentPipeline run after cluster changes
            on_enrichment: Callback receiving each completed enrichment mapping
            on_cluster_selected: Callback receiving the selected Cluster
            timer_factory: Debounce timer factory (threading.Timer compatible)
            id_factory: Fresh cluster id generator
        """
        self.config = (config or EngineConfig()).validate()
        self.source = source
        self.viewport = viewport
        self.on_operations = on_operations
        self.enrichment = enrichment
        self.on_enrichment = on_enrichment
        self.on_cluster_selected = on_cluster_selected

        self.store = IncidentStore(verbose=self.config.verbose)
        self.clusterer = ProximityClusterer.from_config(self.config)
        self.geofences = GeofenceBuilder.from_config(self.config)
        self.projector = ClusterMarkerProjector()
        self._id_factory = id_factory or counter_ids()

        self.scheduler = ReconciliationScheduler(
            self.recompute,
            publish=self._publish,
            debounce_s=self.config.debounce_s,
            timer_factory=timer_factory,
            verbose=self.config.verbose,
        )

        self._lock = threading.Lock()
        self._clusters: Tuple[Cluster, ...] = ()
        self._last_zoom: Optional[float] = None
        self._stop_event = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None
        self._started = False
        self.last_result: Optional[ReconcileResult] = None

    @property
    def clusters(self) -> Tuple[Cluster, ...]:
        return self._clusters

    @property
    def snapshot(self) -> Snapshot:
        return self.store.snapshot

    @property
    def enrichment_results(self) -> Dict[str, LocationEnrichment]:
        if self.enrichment is None:
            return {}
        return self.enrichment.latest

    @property
    def running(self) -> bool:
        return self._started and not self._stop_event.is_set()

    def start(self, poll: bool = True):
        """Start the scheduler and, unless poll=False, the polling thread."""
        if self._stop_event.is_set():
            raise RuntimeError("Engine has been stopped and cannot be restarted")
        if self._started:
            return
        self._started = True
        self.scheduler.start()
        if poll:
            self._poll_thread = threading.Thread(
                target=self._poll_loop, name="firewatch-poll", daemon=True
            )
            self._poll_thread.start()

    def stop(self):
        """Tear down: cancel timers and in-flight work; later results are discarded."""
        self._stop_event.set()
        self.scheduler.stop()
        if self.enrichment is not None:
            self.enrichment.shutdown()
        if self._poll_thread is not None and self._poll_thread is not threading.current_thread():
            self._poll_thread.join(timeout=5.0)

    def _poll_loop(self):
        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(self.config.poll_interval_s)

    def poll_once(self) -> bool:
        """Fetch documents once and, on success, schedule a recompute."""
        try:
            documents = self.source.fetch()
        except Exception as e:
            self.store.record_failure(e)
            return False

        if self._stop_event.is_set():
            return False
        try:
            self.store.refresh(documents)
        except Exception as e:
            self.store.record_failure(e)
            return False
        self.scheduler.notify_data_refresh()
        return True

    def on_moveend(self):
        """Viewport finished moving; debounced before recomputing."""
        self.scheduler.notify_viewport_change()

    def current_zoom(self) -> float:
        try:
            zoom = float(self.viewport.get_zoom())
            self._last_zoom = zoom
            return zoom
        except Exception as e:
            fallback = self._last_zoom if self._last_zoom is not None else self.config.reference_zoom
            print(f"[WARNING] Could not read viewport zoom: {e} - using {fallback}")
            return fallback

    def recompute(self) -> ReconcileResult:
        """Run clustering, geofencing and projection on the freshest inputs."""
        snapshot = self.store.snapshot
        zoom = self.current_zoom()
        previous = self._clusters

        centers = self.clusterer.cluster(snapshot, zoom)
        candidates = [(center, self.geofences.build_geofence(center)) for center in centers]
        clusters = tuple(
            assign_cluster_ids(
                previous, candidates, self._id_factory, self.config.overlap_threshold
            )
        )
        operations = self.projector.project(previous, clusters)

        if self.config.verbose:
            print(
                f"   Zoom {zoom:.2f}: {len(snapshot)} incidents -> {len(clusters)} clusters, "
                f"{len(operations)} operations"
            )

        return ReconcileResult(
            snapshot_sequence=snapshot.sequence,
            zoom=zoom,
            clusters=clusters,
            operations=operations,
        )

    def reconcile_now(self) -> ReconcileResult:
        """Synchronous recompute and publish, for use without the scheduler."""
        if self._started:
            raise RuntimeError("reconcile_now() is only available before start()")
        result = self.recompute()
        self._publish(result)
        return result

    def _publish(self, result: ReconcileResult):
        with self._lock:
            if self._stop_event.is_set():
                return
            self._clusters = result.clusters
            self.last_result = result

        if result.operations and self.on_operations is not None:
            self.on_operations(result.operations, result.clusters)

        if result.operations and self.enrichment is not None and not self._stop_event.is_set():
            self.enrichment.submit(result.clusters, on_done=self.on_enrichment)

    def select_cluster(self, cluster_id: str) -> Optional[Cluster]:
        """Look up a cluster and hand it to the selection callback."""
        cluster = next((c for c in self._clusters if c.cluster_id == cluster_id), None)
        if cluster is None:
            print(f"[WARNING] Unknown cluster selected: {cluster_id}")
            return None
        if self.on_cluster_selected is not None:
            self.on_cluster_selected(cluster)
        return cluster
