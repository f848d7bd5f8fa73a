"""
GKE Cleaner control-plane primitives.

The remote inventory client and the reconciler that drives expiration
tracking and deletion.
"""

from .gke_client import GKEClient
from .reconciler import ClusterReconciler, CycleReport, diff_clusters, filter_clusters

__all__ = ["ClusterReconciler", "CycleReport", "GKEClient", "diff_clusters", "filter_clusters"]
