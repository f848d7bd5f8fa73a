"""
GKE Cleaner ledger.

Local expiration-tracking state for discovered clusters.
"""

from .cluster_store import ClusterStore
from .models import ClusterDiff, ClusterRecord, ClusterSnapshot, RemoteCluster
from .schema import init_db

__all__ = [
    "ClusterDiff",
    "ClusterRecord",
    "ClusterSnapshot",
    "ClusterStore",
    "RemoteCluster",
    "init_db",
]
