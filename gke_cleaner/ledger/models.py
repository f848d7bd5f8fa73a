"""
GKE Cleaner Ledger — Data Models

Persisted cluster records, transient remote clusters, and the canonical
snapshot type the inventory diff operates on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ClusterSnapshot:
    """Name and creation time; the only shape the diff compares."""
    name: str
    create_time: datetime


@dataclass
class ClusterRecord:
    """Expiration-tracking record for one known cluster."""
    name: str
    create_date: datetime
    expiration_date: datetime
    ignore: bool = False
    id: int | None = None

    def snapshot(self) -> ClusterSnapshot:
        return ClusterSnapshot(name=self.name, create_time=self.create_date)


@dataclass
class RemoteCluster:
    """A cluster as reported by the remote inventory for a single cycle."""
    name: str
    create_time: datetime
    location: str
    resource_labels: dict[str, str] = field(default_factory=dict)

    def snapshot(self) -> ClusterSnapshot:
        return ClusterSnapshot(name=self.name, create_time=self.create_time)


@dataclass
class ClusterDiff:
    """Partition of cluster names relative to stored state."""
    added: list[ClusterSnapshot] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    updated: list[ClusterSnapshot] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.added or self.removed or self.updated)
