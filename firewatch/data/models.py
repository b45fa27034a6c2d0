"""
Core data types for the fire clustering engine.

Incidents and snapshots are immutable inputs. ClusterCenter is the only
mutable type and lives for a single clustering pass; everything handed to the
renderer (clusters, geofences, operations) is frozen.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple

Coordinate = Tuple[float, float]  # (lng, lat), GeoJSON order


@dataclass(frozen=True)
class IncidentRecord:
    id: str
    latitude: float
    longitude: float
    live_flag: bool = False
    attributes: Mapping = field(default_factory=dict, compare=False, hash=False)

    @property
    def coordinates(self) -> Coordinate:
        return (self.longitude, self.latitude)

    @property
    def playback_id(self) -> Optional[str]:
        return self.attributes.get("playbackId")


@dataclass(frozen=True)
class Snapshot:
    """All incident records captured at one poll tick."""

    records: Tuple[IncidentRecord, ...] = ()
    sequence: int = 0
    captured_at: float = 0.0

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls()

    @classmethod
    def capture(cls, records, sequence: int) -> "Snapshot":
        return cls(records=tuple(records), sequence=sequence, captured_at=time.time())

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)


@dataclass
class ClusterCenter:
    """
    Accumulator for one cluster during a clustering pass.

    The centroid is a running mean updated as members are added, so it depends
    on the order members arrive in.
    """

    centroid: Coordinate
    members: List[IncidentRecord] = field(default_factory=list)

    @classmethod
    def open(cls, record: IncidentRecord) -> "ClusterCenter":
        return cls(centroid=record.coordinates, members=[record])

    def add(self, record: IncidentRecord) -> None:
        count = len(self.members)
        lng, lat = self.centroid
        self.centroid = (
            (lng * count + record.longitude) / (count + 1),
            (lat * count + record.latitude) / (count + 1),
        )
        self.members.append(record)

    @property
    def size(self) -> int:
        return len(self.members)


@dataclass(frozen=True)
class Geofence:
    """Closed polygon ring of (lng, lat) vertices bounding a cluster."""

    ring: Tuple[Coordinate, ...]
    kind: str = "circle"  # "circle" or "hull"

    @property
    def vertex_count(self) -> int:
        # closing vertex repeats the first one
        return max(len(self.ring) - 1, 0)

    def to_geojson(self) -> dict:
        return {
            "type": "Polygon",
            "coordinates": [[[float(lng), float(lat)] for lng, lat in self.ring]],
        }


@dataclass(frozen=True)
class Cluster:
    cluster_id: str
    center: Coordinate
    members: Tuple[IncidentRecord, ...]
    geofence: Geofence

    @property
    def member_ids(self) -> FrozenSet[str]:
        return frozenset(record.id for record in self.members)

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def has_live(self) -> bool:
        return any(record.live_flag for record in self.members)

    def same_content(self, other: "Cluster") -> bool:
        """True when center, membership and geofence are all unchanged."""
        return (
            self.center == other.center
            and tuple(r.id for r in self.members) == tuple(r.id for r in other.members)
            and self.geofence == other.geofence
        )


@dataclass(frozen=True)
class AddCluster:
    cluster: Cluster
    kind: str = field(default="add", init=False)

    @property
    def cluster_id(self) -> str:
        return self.cluster.cluster_id


@dataclass(frozen=True)
class UpdateCluster:
    previous: Cluster
    cluster: Cluster
    kind: str = field(default="update", init=False)

    @property
    def cluster_id(self) -> str:
        return self.cluster.cluster_id


@dataclass(frozen=True)
class RemoveCluster:
    cluster: Cluster
    kind: str = field(default="remove", init=False)

    @property
    def cluster_id(self) -> str:
        return self.cluster.cluster_id


@dataclass(frozen=True)
class NewsArticle:
    title: str
    url: str = ""
    description: str = ""
    source: str = ""
    published_at: str = ""
    image_url: Optional[str] = None
    is_fallback: bool = False

    @classmethod
    def from_api(cls, item: Dict) -> "NewsArticle":
        return cls(
            title=item.get("title") or "",
            url=item.get("url") or "",
            description=item.get("description") or item.get("snippet") or "",
            source=item.get("source") or "",
            published_at=item.get("published_at") or "",
            image_url=item.get("image_url"),
        )


@dataclass(frozen=True)
class LocationEnrichment:
    name: str
    coordinates: Coordinate
    articles: Tuple[NewsArticle, ...] = ()

    @property
    def uses_fallback(self) -> bool:
        return any(article.is_fallback for article in self.articles)
