"""
Console summaries for the clustering engine.
"""

from typing import Dict, Sequence

from ..data.models import Cluster, LocationEnrichment, Snapshot


def print_operations(operations: Sequence) -> None:
    for op in operations:
        lng, lat = op.cluster.center
        print(
            f"   {op.kind.upper():<6} {op.cluster_id}: {op.cluster.size} incidents "
            f"at ({lng:.5f}, {lat:.5f}) [{op.cluster.geofence.kind}]"
        )


def print_summary_statistics(snapshot: Snapshot, clusters: Sequence[Cluster], zoom: float) -> None:
    """Print snapshot and cluster statistics."""

    print("\n=== Summary Statistics ===")
    print(f"Snapshot {snapshot.sequence}: {len(snapshot)} incidents")
    print(f"Zoom: {zoom:.2f}")
    print(f"Clusters: {len(clusters)}")

    if not clusters:
        return

    sizes = [cluster.size for cluster in clusters]
    hulls = sum(1 for cluster in clusters if cluster.geofence.kind == "hull")
    live = sum(1 for cluster in clusters if cluster.has_live)
    print(f"  Largest cluster: {max(sizes)} incidents")
    print(f"  Singletons: {sizes.count(1)}")
    print(f"  Hull geofences: {hulls}/{len(clusters)}")
    print(f"  Clusters with live streams: {live}")


def print_enrichment(enrichment: Dict[str, LocationEnrichment]) -> None:
    print("\n=== Nearby News ===")
    if not enrichment:
        print("No places resolved.")
        return
    for name, place in enrichment.items():
        tag = " (fallback)" if place.uses_fallback else ""
        print(f"{name}{tag}:")
        for article in place.articles:
            print(f"  - {article.title}")
