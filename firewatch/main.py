#!/usr/bin/env python3
"""
Fire Cluster Engine - Main Entry Point

Polls an incident source, clusters incidents for a viewport zoom and prints the
resulting cluster operations. Optionally writes the clusters as GeoJSON and
looks up nearby fire news.

Usage:
    firewatch --source-file incidents.json --zoom 11 --once
    firewatch --firestore-project my-project --zoom 13 --duration 60 --output clusters.geojson
"""

import argparse
import os
import random
import sys
import time

from .clusters.export_geojson import clusters_to_feature_collection, save_geojson
from .config import ConfigError, load_config
from .data.incident_collect import (
    DEFAULT_COLLECTION,
    FirestoreIncidentSource,
    JsonFileIncidentSource,
)
from .engine import FireClusterEngine, StaticViewport
from .enrichment.geocoding import MapboxGeocoder
from .enrichment.news_collect import NewsClient
from .enrichment.pipeline import EnrichmentPipeline
from .utils.summary import print_enrichment, print_operations, print_summary_statistics


def create_source(args):
    """JSON file source, or Firestore with FIRESTORE_* environment defaults."""
    if args.source_file:
        return JsonFileIncidentSource(args.source_file)

    project = args.firestore_project or os.getenv("FIRESTORE_PROJECT_ID")
    if not project:
        raise ValueError("Pass --source-file or --firestore-project (or set FIRESTORE_PROJECT_ID)")
    return FirestoreIncidentSource(
        project,
        collection=args.collection or os.getenv("FIRESTORE_COLLECTION") or DEFAULT_COLLECTION,
        api_key=args.firestore_api_key or os.getenv("FIRESTORE_API_KEY"),
    )


def create_enrichment(config):
    """Enrichment pipeline, or None when API keys are missing."""
    if not config.mapbox_token or not config.news_api_key:
        print("[WARNING] MAPBOX_ACCESS_TOKEN and NEWS_API_KEY are required for news enrichment - skipping")
        return None
    return EnrichmentPipeline(
        MapboxGeocoder(config.mapbox_token),
        NewsClient(config.news_api_key),
        rng=random.Random(config.fallback_seed),
        news_limit=config.news_limit,
        verbose=config.verbose,
    )


def run_once(engine: FireClusterEngine, output: str = None, enrichment=None):
    """Poll, cluster and publish a single time; enrichment runs in the foreground."""
    if not engine.poll_once():
        print("[WARNING] Using empty snapshot after failed poll")
    result = engine.reconcile_now()

    if enrichment is not None and result.clusters:
        print("\nLooking up nearby fire news...")
        print_enrichment(enrichment.enrich(result.clusters))
        enrichment.shutdown()

    print_summary_statistics(engine.snapshot, result.clusters, result.zoom)
    if output:
        save_geojson(clusters_to_feature_collection(result.clusters), output)
        print(f"Clusters saved to: {output}")
    return result


def run_live(engine: FireClusterEngine, duration: float, output: str = None):
    """Run the engine for `duration` seconds, printing operations as they arrive."""
    engine.start()
    try:
        time.sleep(duration)
    except KeyboardInterrupt:
        print("\nInterrupted.")
    finally:
        engine.stop()

    result = engine.last_result
    zoom = result.zoom if result else engine.current_zoom()
    print_summary_statistics(engine.snapshot, engine.clusters, zoom)
    if output:
        save_geojson(clusters_to_feature_collection(engine.clusters), output)
        print(f"Clusters saved to: {output}")


def main():
    """Main command-line interface for the fire cluster engine."""
    parser = argparse.ArgumentParser(
        description="Zoom-sensitive clustering and geofencing of wildfire reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  firewatch --source-file incidents.json --zoom 11 --once
  firewatch --source-file incidents.json --zoom 15 --once --output clusters.geojson
  firewatch --firestore-project my-project --duration 60 --enrich
        """,
    )

    source = parser.add_mutually_exclusive_group()
    source.add_argument("--source-file", type=str, help="JSON file with incident documents")
    source.add_argument("--firestore-project", type=str, help="Firestore project id to poll")

    parser.add_argument("--collection", type=str, default=None, help="Firestore collection (default: videos)")
    parser.add_argument("--firestore-api-key", type=str, default=None, help="Firestore web API key")
    parser.add_argument("--zoom", type=float, default=11.0, help="Viewport zoom level (default: 11)")
    parser.add_argument("--once", action="store_true", help="Poll and cluster a single time")
    parser.add_argument("--duration", type=float, default=30.0, help="Seconds to run when not --once (default: 30)")
    parser.add_argument("--poll-interval", type=float, default=None, help="Seconds between polls")
    parser.add_argument("--output", type=str, default=None, help="Write clusters to this GeoJSON file")
    parser.add_argument("--enrich", action="store_true", help="Look up nearby fire news for clusters")
    parser.add_argument("--seed", type=int, default=None, help="Seed for fallback article selection")
    parser.add_argument("--verbose", action="store_true", help="Print per-run details")

    args = parser.parse_args()

    try:
        config = load_config(
            poll_interval_s=args.poll_interval,
            fallback_seed=args.seed,
            verbose=args.verbose or None,
        )
        enrichment = create_enrichment(config) if args.enrich else None
        engine = FireClusterEngine(
            create_source(args),
            StaticViewport(args.zoom),
            config=config,
            on_operations=lambda ops, clusters: print_operations(ops),
            enrichment=None if args.once else enrichment,
            on_enrichment=print_enrichment,
        )
    except (ConfigError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(2)

    print("=== Fire Cluster Engine ===\n")
    try:
        if args.once:
            run_once(engine, args.output, enrichment)
        else:
            run_live(engine, args.duration, args.output)
    except Exception as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
