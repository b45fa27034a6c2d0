"""
Incident Store

Holds the latest snapshot of incident records. Raw documents from the polling
source are validated with polars; records with missing or invalid coordinates
are dropped instead of failing the refresh. The snapshot is replaced as a whole
so readers never see a partially updated set.
"""

import threading
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional, Tuple

import polars as pl

from .models import IncidentRecord, Snapshot

LIVE_FLAG_KEYS = ("isLiveStream", "liveFlag", "live_flag", "isLive")
COORDINATE_KEYS = ("id", "latitude", "longitude")

_SCHEMA = {
    "original_idx": pl.Int64,
    "id": pl.Utf8,
    "latitude": pl.Float64,
    "longitude": pl.Float64,
}


def _as_float(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return None
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _as_id(value) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "live")
    return bool(value)


def live_flag_of(document: Dict) -> bool:
    for key in LIVE_FLAG_KEYS:
        if key in document:
            return _as_bool(document[key])
    return False


def normalize_documents(documents: Iterable[Dict]) -> Tuple[List[IncidentRecord], int]:
    """
    Convert raw incident documents into IncidentRecords.

    Args:
        documents: Raw documents with at least id, latitude and longitude

    Returns:
        Tuple of (records in source order, number of dropped documents)
    """
    documents = list(documents)
    skipped = sum(1 for doc in documents if not isinstance(doc, dict))
    documents = [doc for doc in documents if isinstance(doc, dict)]
    rows = [
        {
            "original_idx": idx,
            "id": _as_id(doc.get("id")),
            "latitude": _as_float(doc.get("latitude")),
            "longitude": _as_float(doc.get("longitude")),
        }
        for idx, doc in enumerate(documents)
    ]

    if not rows:
        return [], skipped

    # Filter valid coordinates, then keep the first document for each id
    valid = (
        pl.DataFrame(rows, schema=_SCHEMA)
        .lazy()
        .filter(
            pl.col("id").is_not_null()
            & pl.col("latitude").is_not_null()
            & pl.col("longitude").is_not_null()
            & pl.col("latitude").is_finite()
            & pl.col("longitude").is_finite()
            & pl.col("latitude").is_between(-90, 90)
            & pl.col("longitude").is_between(-180, 180)
        )
        .unique(subset=["id"], keep="first", maintain_order=True)
        .sort("original_idx")
        .collect()
    )

    records = []
    for row in valid.iter_rows(named=True):
        doc = documents[row["original_idx"]]
        attributes = {k: v for k, v in doc.items() if k not in COORDINATE_KEYS}
        records.append(
            IncidentRecord(
                id=row["id"],
                latitude=row["latitude"],
                longitude=row["longitude"],
                live_flag=live_flag_of(doc),
                attributes=MappingProxyType(attributes),
            )
        )

    return records, skipped + len(rows) - len(records)


class IncidentStore:
    """Single-writer holder of the current Snapshot."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self._snapshot = Snapshot.empty()
        self._lock = threading.Lock()
        self.failures = 0
        self.dropped = 0
        self.last_error: Optional[str] = None

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def refresh(self, documents: Iterable[Dict]) -> Snapshot:
        """Normalize a full document list and swap in a new Snapshot."""
        records, dropped = normalize_documents(documents)

        with self._lock:
            snapshot = Snapshot.capture(records, self._snapshot.sequence + 1)
            self._snapshot = snapshot
            self.dropped = dropped
            self.last_error = None

        if dropped:
            print(f"[WARNING] Dropped {dropped} incident documents with invalid id or coordinates")
        if self.verbose:
            print(f"   Snapshot {snapshot.sequence}: {len(snapshot)} incidents")

        return snapshot

    def record_failure(self, error) -> Snapshot:
        """Keep the last-known-good Snapshot after a failed poll."""
        with self._lock:
            self.failures += 1
            self.last_error = str(error)
        print(
            f"[ERROR] Incident poll failed: {error} - keeping snapshot {self._snapshot.sequence}"
        )
        return self._snapshot

