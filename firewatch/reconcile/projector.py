"""
Cluster Marker Projector

Keeps cluster identities stable across recomputations and turns the change
from one cluster set to the next into Add/Update/Remove operations for the
renderer.

Operation order is fixed: every Remove (in previous order), then every Add
(in next order), then every Update (in next order). Updates are only emitted
for clusters whose center, membership or geofence changed.
"""

import itertools
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

from ..data.models import (
    AddCluster,
    Cluster,
    ClusterCenter,
    Geofence,
    RemoveCluster,
    UpdateCluster,
)

Operation = Union[AddCluster, UpdateCluster, RemoveCluster]


def counter_ids(prefix: str = "cluster") -> Callable[[], str]:
    """Id factory yielding prefix-1, prefix-2, ..."""
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def membership_overlap(a: Iterable[str], b: Iterable[str]) -> float:
    """Shared member ids as a fraction of the larger set."""
    a, b = frozenset(a), frozenset(b)
    largest = max(len(a), len(b))
    if largest == 0:
        return 0.0
    return len(a & b) / largest


def assign_cluster_ids(
    previous: Sequence[Cluster],
    candidates: Iterable[Tuple[ClusterCenter, Geofence]],
    id_factory: Optional[Callable[[], str]] = None,
    overlap_threshold: float = 0.5,
) -> List[Cluster]:
    """
    Turn freshly computed centers into Clusters, reusing previous ids.

    A candidate inherits the id of the previous cluster whose membership
    overlaps it above overlap_threshold (identical member sets always match,
    since overlap_threshold is below 1).
    Candidates are matched in order and each previous cluster is claimed at
    most once; the best overlap wins and ties go to the earlier previous
    cluster.

    Args:
        previous: Clusters from the last published run
        candidates: (ClusterCenter, Geofence) pairs from this run
        id_factory: Callable producing fresh ids for new clusters
        overlap_threshold: Minimum overlap fraction (exclusive) for a match

    Returns:
        list: Clusters in candidate order
    """
    id_factory = id_factory or counter_ids()
    unclaimed = list(previous)
    clusters = []

    for center, geofence in candidates:
        member_ids = frozenset(record.id for record in center.members)

        best, best_overlap = None, 0.0
        for prior in unclaimed:
            overlap = membership_overlap(member_ids, prior.member_ids)
            if overlap > best_overlap:
                best, best_overlap = prior, overlap

        if best is not None and best_overlap > overlap_threshold:
            unclaimed.remove(best)
            cluster_id = best.cluster_id
        else:
            cluster_id = id_factory()

        clusters.append(
            Cluster(
                cluster_id=cluster_id,
                center=center.centroid,
                members=tuple(center.members),
                geofence=geofence,
            )
        )

    return clusters


class ClusterMarkerProjector:
    """Diffs two cluster sets keyed by cluster_id."""

    def project(self, previous: Sequence[Cluster], next: Sequence[Cluster]) -> List[Operation]:
        """
        Compute the ordered operations that turn `previous` into `next`.

        Args:
            previous: Cluster set currently rendered
            next: Newly computed cluster set

        Returns:
            list: RemoveCluster ops, then AddCluster ops, then UpdateCluster ops
        """
        prior_by_id = {cluster.cluster_id: cluster for cluster in previous}
        next_ids = {cluster.cluster_id for cluster in next}

        removes = [RemoveCluster(c) for c in previous if c.cluster_id not in next_ids]
        adds = []
        updates = []

        for cluster in next:
            prior = prior_by_id.get(cluster.cluster_id)
            if prior is None:
                adds.append(AddCluster(cluster))
            elif not prior.same_content(cluster):
                updates.append(UpdateCluster(prior, cluster))

        return removes + adds + updates


def playback_target(cluster: Cluster):
    """
    Media to open when a cluster is selected.

    Returns ("live", record) when the first member is streaming live, otherwise
    ("vod", playback_id) for recorded playback (playback_id may be None).
    """
    if not cluster.members:
        return ("vod", None)
    first = cluster.members[0]
    if first.live_flag:
        return ("live", first)
    return ("vod", first.playback_id)
